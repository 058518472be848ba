"""Structural previews of remote geographic datasets."""

__version__ = "0.1.0"
