"""Sorted unique values of a float sequence, with floating-point tolerance."""

from __future__ import annotations

import math
from collections.abc import Iterable

_REALMIN = 2.2250738585072014e-308
_DENORM_MIN = 4.94065645841247e-324


def _spacing(x: float) -> float:
    """Distance from |x/2| to the next larger double; NaN for non-finite input."""
    half = abs(x / 2.0)
    if math.isinf(half) or math.isnan(half):
        return math.nan
    if half <= _REALMIN:
        return _DENORM_MIN
    _, exponent = math.frexp(half)
    return math.ldexp(1.0, exponent - 53)


def _sort_key(value: float) -> tuple[bool, float]:
    return (math.isnan(value), 0.0 if math.isnan(value) else value)


def unique_vector(values: Iterable[float]) -> list[float]:
    """Return the sorted distinct values of ``values``.

    Finite values closer than the spacing of half the first value of a run are
    merged. ``-inf`` and ``+inf`` appear at most once each; every NaN is kept
    and placed at the end.
    """
    ordered = sorted((float(v) for v in values), key=_sort_key)

    neg_inf = [v for v in ordered if math.isinf(v) and v < 0]
    nans = [v for v in ordered if math.isnan(v)]
    pos_inf = [v for v in ordered if math.isinf(v) and v > 0]
    finite = [v for v in ordered if math.isfinite(v)]

    result: list[float] = []
    if neg_inf:
        result.append(neg_inf[0])

    position = 0
    while position < len(finite):
        x = finite[position]
        tolerance = _spacing(x)
        position += 1
        while position < len(finite) and abs(x - finite[position]) < tolerance:
            position += 1
        result.append(x)

    if pos_inf:
        result.append(pos_inf[0])
    result.extend(nans)
    return result