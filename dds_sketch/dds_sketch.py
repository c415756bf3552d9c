# Log-bucketed relative-error quantile sketch (Python)
# - Bucket index k = ceil(log(v) / log(gamma)) for every observation v > 0
# - Additive bucket counts: merge is commutative and associative
# - Byte-exact wire format (little-endian header + varint delta buckets)
# Python 3.9+

from __future__ import annotations

import json
import logging
import math
import struct
from typing import Dict, Iterable, List, Tuple

from .config import DEFAULT_GAMMA, DEFAULT_VERSION, SketchConfig, gamma_for_relative_accuracy
from .exceptions import ConfigurationError, DomainError, SketchError
from .varint import encode_varint

logger = logging.getLogger(__name__)

# version (uint8), gamma (float64 LE), sum (float64 LE)
_HEADER = struct.Struct("<Bdd")


def _observation(value: float) -> float:
    try:
        xv = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise DomainError(f"observation must be a real number, got {value!r}") from exc
    if math.isnan(xv) or math.isinf(xv):
        raise DomainError(f"observation must be finite, got {value!r}")
    if xv <= 0.0:
        raise DomainError(f"observation must be > 0, got {value!r}")
    return xv


def _bucket_index(xv: float, log_gamma: float) -> int:
    # Round up: the bucket's upper bound is always >= the observation.
    return math.ceil(math.log(xv) / log_gamma)


def bucket_index(value: float, gamma: float = DEFAULT_GAMMA) -> int:
    """Return the bucket that ``value`` falls into for growth ratio ``gamma``.

    The index is ``ceil(log(value) / log(gamma))``. Raises
    :class:`~dds_sketch.exceptions.DomainError` for values that are not
    finite and strictly positive, and
    :class:`~dds_sketch.exceptions.ConfigurationError` for ``gamma <= 1``.
    """
    config = SketchConfig(gamma=gamma)
    return _bucket_index(_observation(value), math.log(config.gamma))


class Sketch:
    """
    Mergeable relative-error quantile sketch over positive observations.

    Every observation ``v`` is counted in bucket ``ceil(log_gamma(v))``, so a
    bucket ``k`` covers the interval ``(gamma**(k-1), gamma**k]`` and any value
    reconstructed from it is within ``(gamma-1)/(gamma+1)`` relative error.

    A sketch is an immutable value. :meth:`merge` (also spelled ``a + b``)
    returns a new sketch whose count, sum and bucket counts are the sums of the
    operands'; it requires both operands to share ``version`` and ``gamma``
    exactly.

    Wire format produced by :meth:`raw`:
      version (uint8), gamma (float64 LE), sum (float64 LE), varint(count),
      then for each bucket in ascending key order varint(key - previous key)
      and varint(bucket count), where the first previous key is 0.

    Public API:
      count, sum, version, gamma, buckets, relative_accuracy, bucket_count,
      sorted_buckets(), mean(), merge(other), raw(), hex(), to_dict(), to_json()
    """

    __slots__ = ("_config", "_sum", "_count", "_buckets")

    def __init__(
        self,
        vals: Iterable[float],
        version: int = DEFAULT_VERSION,
        gamma: float = DEFAULT_GAMMA,
    ):
        config = SketchConfig(version=version, gamma=gamma)
        log_gamma = math.log(config.gamma)

        total = 0.0
        count = 0
        buckets: Dict[int, int] = {}
        for value in vals:
            xv = _observation(value)
            key = _bucket_index(xv, log_gamma)
            buckets[key] = buckets.get(key, 0) + 1
            total += xv
            count += 1

        self._config = config
        self._sum = total
        self._count = count
        self._buckets = buckets

    @classmethod
    def empty(cls, version: int = DEFAULT_VERSION, gamma: float = DEFAULT_GAMMA) -> "Sketch":
        return cls((), version=version, gamma=gamma)

    @classmethod
    def from_relative_accuracy(
        cls,
        relative_accuracy: float,
        vals: Iterable[float] = (),
        version: int = DEFAULT_VERSION,
    ) -> "Sketch":
        """Build a sketch whose gamma guarantees ``relative_accuracy``."""
        return cls(vals, version=version, gamma=gamma_for_relative_accuracy(relative_accuracy))

    @classmethod
    def _from_state(
        cls,
        config: SketchConfig,
        total: float,
        count: int,
        buckets: Dict[int, int],
    ) -> "Sketch":
        sketch = cls.__new__(cls)
        sketch._config = config
        sketch._sum = total
        sketch._count = count
        sketch._buckets = buckets
        return sketch

    # ------------------------------- Accessors --------------------------------
    @property
    def config(self) -> SketchConfig:
        return self._config

    @property
    def version(self) -> int:
        return self._config.version

    @property
    def gamma(self) -> float:
        return self._config.gamma

    @property
    def relative_accuracy(self) -> float:
        return self._config.relative_accuracy

    @property
    def sum(self) -> float:
        return self._sum

    @property
    def count(self) -> int:
        return self._count

    @property
    def buckets(self) -> Dict[int, int]:
        """A copy of the bucket counts, keyed in ascending order."""
        return dict(self.sorted_buckets())

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def sorted_buckets(self) -> List[Tuple[int, int]]:
        return sorted(self._buckets.items())

    def mean(self) -> float:
        if self._count == 0:
            raise SketchError("empty sketch")
        return self._sum / self._count

    # -------------------------------- Merging ---------------------------------
    def mergeable(self, other: "Sketch") -> bool:
        return self._config.mergeable(other._config)

    def merge(self, other: "Sketch") -> "Sketch":
        """Return a new sketch summarizing the observations of both operands."""
        if not isinstance(other, Sketch):
            raise TypeError("merge expects Sketch")
        if not self.mergeable(other):
            raise ConfigurationError(
                "cannot merge sketches with different configurations: "
                f"version {self.version} vs {other.version}, gamma {self.gamma!r} vs {other.gamma!r}"
            )

        buckets = dict(self._buckets)
        for key, count in other._buckets.items():
            buckets[key] = buckets.get(key, 0) + count

        logger.debug(
            "merged sketches: count %d + %d, buckets %d + %d -> %d",
            self._count,
            other._count,
            len(self._buckets),
            len(other._buckets),
            len(buckets),
        )
        return type(self)._from_state(
            self._config,
            self._sum + other._sum,
            self._count + other._count,
            buckets,
        )

    def __add__(self, other: object) -> "Sketch":
        if not isinstance(other, Sketch):
            return NotImplemented
        return self.merge(other)

    # ----------------------------- Serialization ------------------------------
    def raw(self) -> bytes:
        """
        Serialize the sketch into its binary wire format.

        Buckets are written in ascending key order so that every key delta is
        non-negative. The first delta is taken against key 0, so a sketch
        holding a negative bucket key (observations below ``1/gamma``) cannot
        be encoded and raises :class:`~dds_sketch.exceptions.EncodingError`.
        """
        out = bytearray(_HEADER.pack(self.version, self.gamma, self._sum))
        out += encode_varint(self._count)

        prev_key = 0
        for key, count in self.sorted_buckets():
            out += encode_varint(key - prev_key)
            out += encode_varint(count)
            prev_key = key

        logger.debug("encoded sketch: %d buckets, %d bytes", len(self._buckets), len(out))
        return bytes(out)

    def hex(self) -> str:
        return self.raw().hex()

    def to_dict(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "sum": self._sum,
            "count": self._count,
            "gamma": self.gamma,
            "buckets": {str(key): count for key, count in self.sorted_buckets()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    # ------------------------------ Value object ------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sketch):
            return NotImplemented
        return (
            self._config == other._config
            and self._sum == other._sum
            and self._count == other._count
            and self._buckets == other._buckets
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        buckets = ", ".join(f"{key}: {count}" for key, count in self.sorted_buckets())
        return (
            f"Sketch<version: {self.version}, sum: {self._sum!r}, count: {self._count}, "
            f"gamma: {self.gamma!r}, bucket_count: {len(self._buckets)}, buckets: {{{buckets}}}>"
        )


def merge(a: Sketch, b: Sketch) -> Sketch:
    """Functional spelling of :meth:`Sketch.merge`."""
    return a.merge(b)


# ----------------------------- quick self-test --------------------------------
if __name__ == "__main__":
    import random

    rng = random.Random(42)
    shards = [[rng.lognormvariate(3.0, 1.0) + 1.0 for _ in range(5_000)] for _ in range(4)]

    merged = Sketch.empty()
    for shard in shards:
        merged = merged + Sketch(shard)

    single = Sketch([v for shard in shards for v in shard])
    print(f"count={merged.count} buckets={merged.bucket_count} bytes={len(merged.raw())}")
    assert merged.buckets == single.buckets, "sharded merge diverged from single build"
    assert merged.count == sum(merged.buckets.values()), "count/bucket invariant violated"
