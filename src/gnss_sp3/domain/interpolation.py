# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Lagrange interpolation of SP3 satellite positions.

Given a target time and a polynomial order N, the engine picks the N+1
consecutive samples centered as closely as possible on the target and
evaluates the Lagrange polynomial through them, per axis, in float64.

Validity window: with half = ceil((N + 1) / 2) and dt the measured epoch
spacing, only targets in [t0 + half*dt, tN - half*dt] are accepted, where
t0 and tN are the satellite's first and last epochs with a usable position.
Nothing is extrapolated.

Clock corrections are not interpolated with the same polynomial; they are
blended linearly between the bracketing samples.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

import numpy as np

from gnss_sp3.domain.errors import InsufficientDataError, OutOfRangeError
from gnss_sp3.domain.records import PositionRecord, Vector
from gnss_sp3.domain.satellite import SatelliteId
from gnss_sp3.domain.time_scale import as_epoch

if TYPE_CHECKING:
    from gnss_sp3.domain.product import SP3Product


@dataclass(frozen=True)
class InterpolatedPosition:
    """Interpolated satellite state at an arbitrary epoch."""
    satellite: SatelliteId
    epoch: datetime
    position_km: Vector
    clock_us: float | None
    order: int
    uniform_sampling: bool  # False: product spacing is irregular, treat with care


def _check_order(order: int) -> None:
    if isinstance(order, bool) or not isinstance(order, int) or order < 1:
        raise ValueError(f"interpolation order must be a positive integer, got {order!r}")


def _data_bounds(
    samples: list[tuple[datetime, PositionRecord]],
) -> tuple[datetime, datetime] | None:
    """First and last epochs whose position is not a sentinel."""
    usable = [epoch for epoch, record in samples if record.position_km is not None]
    if not usable:
        return None
    return usable[0], usable[-1]


def validity_window(
    product: SP3Product, satellite: SatelliteId, order: int,
) -> tuple[datetime, datetime] | None:
    """Return (tmin, tmax) for a satellite and order, or None without usable samples.

    The window may be empty (tmin > tmax) when the series is too short.
    """
    _check_order(order)
    bounds = _data_bounds(list(product.series(satellite)))
    if bounds is None:
        return None
    first, last = bounds
    margin = timedelta(seconds=math.ceil((order + 1) / 2) * product.measured_interval)
    return first + margin, last - margin


def lagrange_weights(nodes: np.ndarray, t: float) -> np.ndarray:
    """Lagrange basis weights of every node evaluated at t.

    At t equal to a node the weight vector is exactly one-hot: the factor
    (t - t_k) is 0.0 for every other basis polynomial and each factor of
    the node's own polynomial is x / x == 1.0.
    """
    nodes = np.asarray(nodes, dtype=np.float64)
    n = len(nodes)
    denominators = nodes[:, None] - nodes[None, :]
    np.fill_diagonal(denominators, 1.0)
    factors = (t - nodes)[None, :] / denominators
    np.fill_diagonal(factors, 1.0)
    return np.prod(factors, axis=1).reshape(n)


def _select_window(offsets: np.ndarray, t: float, n_points: int) -> int | None:
    """Start index of the n_points-sample window centered best on t.

    Only windows that bracket t are considered. Ties go to the lower start
    index so results are reproducible.
    """
    last_start = len(offsets) - n_points
    if last_start < 0:
        return None
    i = int(np.searchsorted(offsets, t, side="right")) - 1
    lo = max(0, i - n_points + 1)
    hi = min(last_start, i)
    best = None
    best_distance = math.inf
    for s in range(lo, hi + 1):
        middle = 0.5 * (offsets[s] + offsets[s + n_points - 1])
        distance = abs(middle - t)
        if distance < best_distance:
            best, best_distance = s, distance
    return best


def _blend_clock(
    samples: list[tuple[datetime, PositionRecord]], offsets: np.ndarray, t: float,
) -> float | None:
    """Linear blend of the bracketing clocks, or the nearest available one."""
    hi = int(np.searchsorted(offsets, t, side="left"))
    if hi < len(offsets) and offsets[hi] == t:
        return samples[hi][1].clock_us
    lo = hi - 1
    before = samples[lo][1].clock_us if lo >= 0 else None
    after = samples[hi][1].clock_us if hi < len(samples) else None
    if before is not None and after is not None:
        fraction = (t - offsets[lo]) / (offsets[hi] - offsets[lo])
        return before + fraction * (after - before)
    return before if before is not None else after


def interpolate(
    product: SP3Product,
    satellite: SatelliteId,
    target: datetime,
    order: int = 9,
) -> InterpolatedPosition:
    """Estimate a satellite position at ``target`` with an order-N Lagrange polynomial.

    Args:
        product: Parsed SP3 product (read only).
        satellite: Satellite to interpolate.
        target: Epoch in the product's time system (naive datetimes are
            taken as already being in that system).
        order: Polynomial order N; N + 1 samples are used.

    Returns:
        InterpolatedPosition with position in km and clock in us.

    Raises:
        ValueError: If order is not a positive integer.
        OutOfRangeError: If target is outside the validity window.
        InsufficientDataError: If a required sample is missing or sentinel.
    """
    _check_order(order)
    target = as_epoch(target)
    samples = list(product.series(satellite))
    bounds = _data_bounds(samples)
    if bounds is None:
        raise OutOfRangeError(satellite, target, None, None)

    dt = product.measured_interval
    t0 = samples[0][0]
    margin = timedelta(seconds=math.ceil((order + 1) / 2) * dt)
    tmin = bounds[0] + margin
    tmax = bounds[1] - margin
    if not tmin <= target <= tmax:
        raise OutOfRangeError(satellite, target, tmin, tmax)

    n_points = order + 1
    offsets = np.array([(e - t0).total_seconds() for e, _ in samples], dtype=np.float64)
    t = (target - t0).total_seconds()

    start = _select_window(offsets, t, n_points)
    if start is None:
        raise InsufficientDataError(
            satellite, target, f"fewer than {n_points} samples around target",
        )
    window = samples[start:start + n_points]
    nodes = offsets[start:start + n_points]

    span = nodes[-1] - nodes[0]
    if span > order * dt + order * product.spacing_tolerance_s:
        raise InsufficientDataError(
            satellite, target,
            f"samples missing: window spans {span:.3f} s, expected {order * dt:.3f} s",
        )

    missing = [epoch for epoch, record in window if record.position_km is None]
    if missing:
        raise InsufficientDataError(
            satellite, target,
            f"unavailable position at {', '.join(e.isoformat() for e in missing)}",
        )

    positions = np.array([record.position_km for _, record in window], dtype=np.float64)
    weights = lagrange_weights(nodes, t)
    estimate = weights @ positions

    return InterpolatedPosition(
        satellite=satellite,
        epoch=target,
        position_km=(float(estimate[0]), float(estimate[1]), float(estimate[2])),
        clock_us=_blend_clock(samples, offsets, t),
        order=order,
        uniform_sampling=product.uniform_sampling,
    )
