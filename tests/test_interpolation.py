# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""Lagrange interpolation of SP3 positions.

Synthetic circular orbits sampled every 15 minutes make the expected
position known at any time, so accuracy between samples can be checked as
well as exactness at the samples themselves.
"""
import math
import threading
from datetime import datetime, timedelta

import numpy as np
import pytest

from gnss_sp3 import (
    Constellation,
    InsufficientDataError,
    OutOfRangeError,
    SatelliteId,
    SP3Product,
    interpolate,
    lagrange_weights,
    parse_sp3,
    validity_window,
)
from gnss_sp3.domain.interpolation import _select_window

from sp3_samples import START, clock_us, sp3_text, true_position

G01 = SatelliteId(Constellation.GPS, 1)
R05 = SatelliteId(Constellation.GLONASS, 5)
E11 = SatelliteId(Constellation.GALILEO, 11)

_SATS = ("G01", "G02", "R05", "E11", "C19")
_DT = 900.0


def _product(**kwargs) -> SP3Product:
    kwargs.setdefault("epochs", 96)
    return parse_sp3(sp3_text(satellites=_SATS, **kwargs))


def _at(k: float) -> datetime:
    """Epoch k sampling steps after START."""
    return START + timedelta(seconds=k * _DT)


def _distance_km(a, b) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


class TestLagrangeWeights:
    """Basis weights of the Lagrange polynomial."""

    def test_one_hot_at_nodes(self):
        nodes = np.arange(10) * _DT
        for k, node in enumerate(nodes):
            weights = lagrange_weights(nodes, float(node))
            expected = np.zeros(10)
            expected[k] = 1.0
            assert np.array_equal(weights, expected)

    def test_partition_of_unity(self):
        nodes = np.arange(10) * _DT
        for t in (123.0, 4050.0, 8000.5):
            assert math.isclose(lagrange_weights(nodes, t).sum(), 1.0, abs_tol=1e-9)

    def test_reproduces_polynomial(self):
        nodes = np.arange(6) * 10.0
        values = 3.0 * nodes ** 3 - nodes + 2.0
        t = 27.5
        assert math.isclose(
            lagrange_weights(nodes, t) @ values, 3.0 * t ** 3 - t + 2.0, rel_tol=1e-9,
        )


class TestWindowSelection:
    """Choice of the N+1 consecutive samples around the target."""

    def test_centered_window_for_odd_count(self):
        offsets = np.arange(20) * _DT
        assert _select_window(offsets, 5 * _DT, 5) == 3

    def test_tie_resolves_to_earlier_start(self):
        offsets = np.arange(20) * _DT
        # windows starting at 3 and 4 are equally centered on sample 5
        assert _select_window(offsets, 5 * _DT, 4) == 3

    def test_midpoint_target(self):
        offsets = np.arange(20) * _DT
        assert _select_window(offsets, 5.5 * _DT, 4) == 4

    def test_too_few_samples(self):
        offsets = np.arange(3) * _DT
        assert _select_window(offsets, _DT, 4) is None


class TestValidityWindow:
    """Targets outside [t0 + half*dt, tN - half*dt] are rejected."""

    def test_window_bounds_order_9(self):
        tmin, tmax = validity_window(_product(), G01, 9)
        assert tmin == _at(5)
        assert tmax == _at(90)

    def test_window_bounds_even_order(self):
        # ceil(11 / 2) == 6 samples of margin for order 10
        tmin, tmax = validity_window(_product(), G01, 10)
        assert tmin == _at(6)
        assert tmax == _at(89)

    def test_no_samples(self):
        assert validity_window(_product(), SatelliteId(Constellation.QZSS, 3), 9) is None

    def test_lower_boundary(self):
        product = _product()
        interpolate(product, G01, _at(5))
        with pytest.raises(OutOfRangeError) as exc:
            interpolate(product, G01, _at(5) - timedelta(seconds=1))
        assert exc.value.tmin == _at(5)
        assert exc.value.tmax == _at(90)
        assert exc.value.satellite == G01

    def test_upper_boundary(self):
        product = _product()
        interpolate(product, G01, _at(90))
        with pytest.raises(OutOfRangeError):
            interpolate(product, G01, _at(90) + timedelta(seconds=1))

    def test_no_extrapolation_before_file(self):
        with pytest.raises(OutOfRangeError):
            interpolate(_product(), G01, START - timedelta(hours=1))

    def test_unknown_satellite(self):
        with pytest.raises(OutOfRangeError) as exc:
            interpolate(_product(), SatelliteId(Constellation.QZSS, 3), _at(40))
        assert exc.value.tmin is None

    def test_series_too_short(self):
        product = _product(epochs=8)
        with pytest.raises(OutOfRangeError, match="no valid window"):
            interpolate(product, G01, _at(4))

    def test_window_follows_satellite_series(self):
        missing = frozenset((k, "E11") for k in range(10))
        product = _product(missing=missing)
        tmin, _ = validity_window(product, E11, 9)
        assert tmin == _at(15)

    def test_window_ignores_leading_and_trailing_sentinels(self):
        unavailable = frozenset((k, "G01") for k in (0, 1, 2, 93, 94, 95))
        product = _product(sentinel=unavailable)
        assert validity_window(product, G01, 9) == (_at(8), _at(87))
        interpolate(product, G01, _at(8))
        interpolate(product, G01, _at(87))
        with pytest.raises(OutOfRangeError) as exc:
            interpolate(product, G01, _at(7))
        assert exc.value.tmin == _at(8)
        with pytest.raises(OutOfRangeError):
            interpolate(product, G01, _at(88))

    def test_satellite_without_usable_positions(self):
        product = _product(sentinel=frozenset((k, "E11") for k in range(96)))
        assert validity_window(product, E11, 9) is None
        with pytest.raises(OutOfRangeError, match="no valid window"):
            interpolate(product, E11, _at(40))


class TestInterpolationAccuracy:
    """Exact at samples, centimeter-level between them."""

    @pytest.mark.parametrize("order", [7, 9, 11])
    def test_exact_at_sample_epochs(self, order):
        product = _product()
        half = math.ceil((order + 1) / 2)
        for k in range(half, 96 - half):
            result = interpolate(product, R05, _at(k), order)
            assert _distance_km(result.position_km, product.position(_at(k), R05)) <= 1e-6

    @pytest.mark.parametrize("order", [7, 9, 11])
    def test_matches_orbit_between_samples(self, order):
        product = _product()
        for label in _SATS:
            sat = SatelliteId.parse(label)
            for k in (20.5, 47.25, 70.75):
                result = interpolate(product, sat, _at(k), order)
                truth = true_position(label, k * _DT)
                assert _distance_km(result.position_km, truth) < 1e-4, (label, k)

    def test_result_fields(self):
        product = _product()
        result = interpolate(product, E11, _at(30.5))
        assert result.satellite == E11
        assert result.epoch == _at(30.5)
        assert result.order == 9
        assert result.uniform_sampling

    def test_product_method_delegates(self):
        product = _product()
        assert product.interpolate(G01, _at(33.3), 11) == interpolate(
            product, G01, _at(33.3), 11,
        )

    def test_naive_target(self):
        product = _product()
        naive = datetime(2026, 1, 15, 12, 7, 30)
        aware = START + timedelta(hours=12, minutes=7, seconds=30)
        assert interpolate(product, G01, naive) == interpolate(product, G01, aware)

    def test_low_order(self):
        product = _product()
        result = interpolate(product, G01, _at(40), 1)
        assert result.position_km == product.position(_at(40), G01)


class TestInterpolationData:
    """Missing and sentinel samples inside the window."""

    def test_sentinel_in_window(self):
        product = _product(sentinel=frozenset({(40, "G01")}))
        with pytest.raises(InsufficientDataError) as exc:
            interpolate(product, G01, _at(40.5))
        assert exc.value.satellite == G01

    def test_sentinel_outside_window(self):
        product = _product(sentinel=frozenset({(40, "G01")}))
        result = interpolate(product, G01, _at(70.5))
        truth = true_position("G01", 70.5 * _DT)
        assert _distance_km(result.position_km, truth) < 1e-4

    def test_gap_in_window(self):
        product = _product(missing=frozenset({(40, "E11")}))
        with pytest.raises(InsufficientDataError, match="samples missing"):
            interpolate(product, E11, _at(41.5))

    def test_gap_does_not_affect_other_satellites(self):
        product = _product(missing=frozenset({(40, "E11")}))
        interpolate(product, G01, _at(41.5))

    def test_non_uniform_sampling_flag(self):
        offsets = [k * _DT for k in range(96)]
        offsets[2] += 0.5
        product = parse_sp3(sp3_text(satellites=_SATS, offsets=offsets))
        assert not product.uniform_sampling
        result = interpolate(product, G01, _at(50.5))
        assert not result.uniform_sampling


class TestOrderValidation:

    @pytest.mark.parametrize("order", [0, -3, 2.5, True, "9"])
    def test_invalid_order(self, order):
        with pytest.raises(ValueError):
            interpolate(_product(epochs=30), G01, _at(15), order)


class TestClockBlend:
    """Clock corrections are blended linearly between bracketing samples."""

    def test_linear_clock_reproduced(self):
        product = _product()
        for k in (20.5, 33.1, 60.9):
            result = interpolate(product, G01, _at(k))
            assert result.clock_us == pytest.approx(clock_us("G01", k * _DT), abs=2e-6)

    def test_clock_at_sample(self):
        product = _product()
        result = interpolate(product, G01, _at(30))
        assert result.clock_us == product.clock(_at(30), G01)

    def test_nearest_available_clock(self):
        product = _product(clock_sentinel=frozenset({(40, "G01")}))
        result = interpolate(product, G01, _at(40.25))
        assert result.clock_us == product.clock(_at(41), G01)

    def test_clock_sentinel_at_target_sample(self):
        product = _product(clock_sentinel=frozenset({(40, "G01")}))
        result = interpolate(product, G01, _at(40))
        assert result.clock_us is None
        assert result.position_km == product.position(_at(40), G01)


class TestConcurrentQueries:

    def test_parallel_interpolation(self):
        product = _product()
        targets = [_at(10 + 0.37 * k) for k in range(100)]
        expected = [interpolate(product, R05, t).position_km for t in targets]
        results = {}

        def worker(idx):
            results[idx] = [interpolate(product, R05, t).position_km for t in targets]

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(r == expected for r in results.values())
