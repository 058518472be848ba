from geosample.domain.download.util.di.provider import DownloadProvider

__all__ = ["DownloadProvider"]
