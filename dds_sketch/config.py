"""Sketch configuration: the (version, gamma) pair that must agree on merge."""
from __future__ import annotations

import math
import operator
from dataclasses import dataclass

from .exceptions import ConfigurationError

DEFAULT_VERSION: int = 1
DEFAULT_RELATIVE_ACCURACY: float = 0.01
DEFAULT_GAMMA: float = (1 + DEFAULT_RELATIVE_ACCURACY) / (1 - DEFAULT_RELATIVE_ACCURACY)

# The version travels as a single unsigned byte.
MAX_VERSION: int = 0xFF


def gamma_for_relative_accuracy(relative_accuracy: float) -> float:
    """Return the bucket growth ratio that yields ``relative_accuracy``."""
    try:
        alpha = float(relative_accuracy)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"relative accuracy must be a number, got {relative_accuracy!r}") from exc
    if not (0.0 < alpha < 1.0):
        raise ConfigurationError(f"relative accuracy must be in (0, 1), got {alpha!r}")
    return (1 + alpha) / (1 - alpha)


@dataclass(frozen=True)
class SketchConfig:
    """Encoding generation and bucket growth ratio of a sketch.

    Two sketches can only be merged when both fields are exactly equal; no
    tolerance is applied to ``gamma``.
    """

    version: int = DEFAULT_VERSION
    gamma: float = DEFAULT_GAMMA

    def __post_init__(self) -> None:
        if isinstance(self.version, bool):
            raise ConfigurationError(f"version must be an integer, got {self.version!r}")
        try:
            version = operator.index(self.version)
        except TypeError as exc:
            raise ConfigurationError(f"version must be an integer, got {self.version!r}") from exc
        if not (0 <= version <= MAX_VERSION):
            raise ConfigurationError(f"version must be in [0, {MAX_VERSION}], got {version}")
        object.__setattr__(self, "version", version)

        try:
            gamma = float(self.gamma)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"gamma must be a number, got {self.gamma!r}") from exc
        # NaN fails the comparison as well.
        if not (gamma > 1.0) or math.isinf(gamma):
            raise ConfigurationError(f"gamma must be a finite number > 1, got {gamma!r}")
        object.__setattr__(self, "gamma", gamma)

    @property
    def relative_accuracy(self) -> float:
        return (self.gamma - 1) / (self.gamma + 1)

    def mergeable(self, other: "SketchConfig") -> bool:
        return self.version == other.version and self.gamma == other.gamma
