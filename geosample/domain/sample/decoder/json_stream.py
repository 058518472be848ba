"""Incremental JSON extraction on top of ijson's push interface."""

from collections.abc import Iterable
from typing import Any

import ijson

# Raised by every ijson backend, plus undecodable bytes in the pure-python one
JSON_ERRORS = (ijson.JSONError, UnicodeDecodeError)

_OPENING = {"start_map", "start_array"}
_CLOSING = {"end_map", "end_array"}


class JsonStream:
    """Feeds byte chunks to ijson and returns complete values at watched prefixes.

    Prefixes use ijson's dotted notation (e.g. ``features.item.properties``).
    Only one watched value is assembled at a time, so nested watched prefixes
    are not supported.
    """

    def __init__(self, prefixes: Iterable[str]) -> None:
        self._events = ijson.sendable_list()
        self._parser = ijson.parse_coro(self._events, use_float=True)
        self._prefixes = frozenset(prefixes)
        self._builder: ijson.ObjectBuilder | None = None
        self._building: str | None = None
        self._depth = 0

    def feed(self, chunk: bytes) -> list[tuple[str, Any]]:
        self._parser.send(chunk)
        return self._drain()

    def finish(self) -> list[tuple[str, Any]]:
        """Signal end of input; raises if the document is incomplete."""
        self._parser.close()
        return self._drain()

    def _drain(self) -> list[tuple[str, Any]]:
        found: list[tuple[str, Any]] = []
        for prefix, event, value in self._events:
            if self._builder is None:
                if prefix not in self._prefixes:
                    continue
                if event in _OPENING:
                    self._builder = ijson.ObjectBuilder()
                    self._builder.event(event, value)
                    self._building = prefix
                    self._depth = 1
                elif event not in _CLOSING and event != "map_key":
                    found.append((prefix, value))
                continue

            self._builder.event(event, value)
            if event in _OPENING:
                self._depth += 1
            elif event in _CLOSING:
                self._depth -= 1
                if self._depth == 0:
                    found.append((self._building, self._builder.value))
                    self._builder = None
                    self._building = None
        del self._events[:]
        return found
