from geosample.domain.sample.util.di.provider import SampleProvider

__all__ = ["SampleProvider"]
