"""dds_sketch package public API."""
from ._metadata import __version__
from .accumulator import Accumulator
from .config import DEFAULT_GAMMA, DEFAULT_VERSION, SketchConfig
from .dds_sketch import Sketch, bucket_index, merge
from .exceptions import ConfigurationError, DomainError, EncodingError, SketchError
from .varint import encode_varint


class DDSketch(Sketch):
    """Alias for :class:`Sketch` used by the benchmarking utilities."""


__all__ = [
    "Accumulator",
    "ConfigurationError",
    "DDSketch",
    "DEFAULT_GAMMA",
    "DEFAULT_VERSION",
    "DomainError",
    "EncodingError",
    "Sketch",
    "SketchConfig",
    "SketchError",
    "__version__",
    "bucket_index",
    "encode_varint",
    "merge",
]
