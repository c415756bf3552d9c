"""Mutable reduction target for folding many sketches together."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from .config import SketchConfig
from .dds_sketch import Sketch
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Accumulator:
    """
    Fold any number of compatible sketches without building an intermediate
    :class:`Sketch` per step.

    The first sketch added fixes the configuration; every later one must share
    its ``version`` and ``gamma``. Bucket counts are added in place, and
    :meth:`to_sketch` materializes the result as an immutable sketch. Not
    thread-safe.
    """

    __slots__ = ("_config", "_sum", "_count", "_buckets")

    def __init__(self) -> None:
        self._config: Optional[SketchConfig] = None
        self._sum = 0.0
        self._count = 0
        self._buckets: Dict[int, int] = {}

    @property
    def config(self) -> Optional[SketchConfig]:
        return self._config

    @property
    def count(self) -> int:
        return self._count

    @property
    def sum(self) -> float:
        return self._sum

    @property
    def is_empty(self) -> bool:
        return self._config is None

    def add(self, sketch: Sketch) -> "Accumulator":
        if not isinstance(sketch, Sketch):
            raise TypeError("add expects Sketch")
        if self._config is None:
            self._config = sketch.config
        elif not self._config.mergeable(sketch.config):
            raise ConfigurationError(
                "cannot accumulate sketch with a different configuration: "
                f"expected {self._config}, got {sketch.config}"
            )

        self._sum += sketch.sum
        self._count += sketch.count
        for key, count in sketch.sorted_buckets():
            self._buckets[key] = self._buckets.get(key, 0) + count
        logger.debug("accumulated sketch of %d observations (total %d)", sketch.count, self._count)
        return self

    def extend(self, sketches: Iterable[Sketch]) -> "Accumulator":
        for sketch in sketches:
            self.add(sketch)
        return self

    def to_sketch(self) -> Sketch:
        if self._config is None:
            raise ConfigurationError("nothing accumulated; version and gamma are unknown")
        return Sketch._from_state(self._config, self._sum, self._count, dict(self._buckets))

    def clear(self) -> None:
        self._config = None
        self._sum = 0.0
        self._count = 0
        self._buckets.clear()
