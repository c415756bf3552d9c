"""Property-based tests for the merge algebra, bucketing and wire format."""
from __future__ import annotations

import struct
from typing import Dict, Tuple

import pytest

hypothesis = pytest.importorskip("hypothesis")
st = hypothesis.strategies
given = hypothesis.given
settings = hypothesis.settings

from dds_sketch import Sketch, bucket_index, encode_varint, merge

GAMMA = 1.05

positive = st.floats(min_value=1e-9, max_value=1e12, allow_nan=False, allow_infinity=False)
# Observations >= 1 land in non-negative buckets and can always be encoded.
encodable = st.floats(min_value=1.0, max_value=1e12, allow_nan=False, allow_infinity=False)
observations = st.lists(positive, max_size=300)


def _decode_varint(data: bytes, offset: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        shift += 7
        if not byte & 0x80:
            return result, offset


def _decode(data: bytes) -> Tuple[int, float, float, int, Dict[int, int]]:
    version, gamma, total = struct.unpack_from("<Bdd", data, 0)
    count, offset = _decode_varint(data, 17)
    buckets: Dict[int, int] = {}
    key = 0
    while offset < len(data):
        delta, offset = _decode_varint(data, offset)
        occurrences, offset = _decode_varint(data, offset)
        key += delta
        buckets[key] = occurrences
    return version, gamma, total, count, buckets


@given(observations, observations)
@settings(max_examples=100, deadline=None)
def test_merge_is_additive(xs: list[float], ys: list[float]) -> None:
    a = Sketch(xs, gamma=GAMMA)
    b = Sketch(ys, gamma=GAMMA)
    c = merge(a, b)
    assert c.count == a.count + b.count
    assert c.sum == a.sum + b.sum
    assert sum(c.buckets.values()) == c.count


@given(observations, observations)
@settings(max_examples=100, deadline=None)
def test_merge_is_commutative(xs: list[float], ys: list[float]) -> None:
    a = Sketch(xs, gamma=GAMMA)
    b = Sketch(ys, gamma=GAMMA)
    assert merge(a, b).buckets == merge(b, a).buckets
    assert merge(a, b).count == merge(b, a).count


@given(observations, observations, observations)
@settings(max_examples=60, deadline=None)
def test_merge_is_associative(xs: list[float], ys: list[float], zs: list[float]) -> None:
    a, b, c = (Sketch(vals, gamma=GAMMA) for vals in (xs, ys, zs))
    assert merge(merge(a, b), c).buckets == merge(a, merge(b, c)).buckets


@given(observations)
@settings(max_examples=100, deadline=None)
def test_empty_sketch_is_merge_identity(xs: list[float]) -> None:
    a = Sketch(xs, gamma=GAMMA)
    empty = Sketch.empty(gamma=GAMMA)
    for merged in (merge(a, empty), merge(empty, a)):
        assert merged.sum == a.sum
        assert merged.count == a.count
        assert merged.buckets == a.buckets


@given(observations, observations)
@settings(max_examples=60, deadline=None)
def test_sharded_build_matches_single_build(xs: list[float], ys: list[float]) -> None:
    single = Sketch(xs + ys, gamma=GAMMA)
    sharded = Sketch(xs, gamma=GAMMA) + Sketch(ys, gamma=GAMMA)
    assert sharded.buckets == single.buckets
    assert sharded.count == single.count


@given(positive, positive, st.floats(min_value=1.0001, max_value=10.0))
@settings(max_examples=200, deadline=None)
def test_bucketing_is_monotonic(v1: float, v2: float, gamma: float) -> None:
    lo, hi = sorted((v1, v2))
    assert bucket_index(lo, gamma) <= bucket_index(hi, gamma)


@given(st.floats(min_value=1.001, max_value=4.0), st.integers(min_value=-50, max_value=50))
@settings(max_examples=200, deadline=None)
def test_powers_of_gamma_land_on_boundary(gamma: float, k: int) -> None:
    # gamma**k is itself rounded, so the quotient may land a hair above k.
    assert bucket_index(gamma**k, gamma) in (k, k + 1)


@given(st.integers(min_value=0, max_value=2**80))
@settings(max_examples=300, deadline=None)
def test_varint_roundtrip_and_termination(n: int) -> None:
    encoded = encode_varint(n)
    value, end = _decode_varint(encoded, 0)
    assert value == n
    assert end == len(encoded)
    assert all(byte & 0x80 for byte in encoded[:-1])
    assert encoded[-1] & 0x80 == 0
    assert len(encoded) == max(1, (n.bit_length() + 6) // 7)


@given(st.lists(encodable, max_size=300), st.integers(min_value=0, max_value=255))
@settings(max_examples=100, deadline=None)
def test_encoding_is_deterministic_and_decodable(xs: list[float], version: int) -> None:
    sketch = Sketch(xs, version=version, gamma=GAMMA)
    payload = sketch.raw()
    assert payload == sketch.raw()
    assert payload == Sketch(xs, version=version, gamma=GAMMA).raw()

    assert _decode(payload) == (version, GAMMA, sketch.sum, sketch.count, sketch.buckets)
