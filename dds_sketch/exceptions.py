"""Exceptions raised by :mod:`dds_sketch`."""


class SketchError(ValueError):
    """Base class for every error raised by the sketch."""


class ConfigurationError(SketchError):
    """Invalid gamma/version, or an attempt to merge incompatible sketches."""


class DomainError(SketchError):
    """An observation outside the domain of the logarithmic bucketing."""


class EncodingError(SketchError):
    """A value that cannot be represented in the wire format."""
