# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
SP3 product: immutable time series store.

Records are indexed by epoch, then by satellite. The product is built once
(by the record parser or by a merge) and never mutated afterwards, so any
number of threads may query it concurrently.

Finalisation measures the actual epoch spacing. Irregular sampling is not
an error: exact lookups stay valid, and ``uniform_sampling`` tells callers
that interpolation results may be unreliable.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Iterator, Mapping

import numpy as np

from gnss_sp3.domain.errors import OrderingError
from gnss_sp3.domain.header import DataType, DataUsed, OrbitType, SP3Header, Version
from gnss_sp3.domain.interpolation import InterpolatedPosition, interpolate
from gnss_sp3.domain.records import (
    CorrelationRecord,
    PositionRecord,
    Vector,
    VelocityRecord,
)
from gnss_sp3.domain.satellite import SatelliteId
from gnss_sp3.domain.time_scale import TimeScale, as_epoch

logger = logging.getLogger(__name__)

DEFAULT_SPACING_TOLERANCE_S = 1e-3


@dataclass(frozen=True)
class EpochEntry:
    """Everything recorded for one satellite at one epoch."""
    position: PositionRecord
    velocity: VelocityRecord | None = None
    position_correlation: CorrelationRecord | None = None
    velocity_correlation: CorrelationRecord | None = None


@dataclass(frozen=True)
class ParseWarning:
    """A recoverable event collected while building a product."""
    line_number: int | None
    message: str
    line: str = ""


class SP3Product:
    """Parsed SP3 file: header metadata plus per-epoch satellite records."""

    def __init__(
        self,
        header: SP3Header,
        records: Mapping[datetime, Mapping[SatelliteId, EpochEntry]],
        warnings: tuple[ParseWarning, ...] = (),
        undeclared_satellites: frozenset[SatelliteId] = frozenset(),
        spacing_tolerance_s: float = DEFAULT_SPACING_TOLERANCE_S,
    ) -> None:
        epochs = tuple(records)
        for i in range(1, len(epochs)):
            if epochs[i] <= epochs[i - 1]:
                raise OrderingError(i, epochs[i - 1], epochs[i])

        self._header = header
        self._epochs = epochs
        self._records = MappingProxyType({
            epoch: MappingProxyType(dict(records[epoch])) for epoch in epochs
        })
        self._warnings = tuple(warnings)
        self._undeclared = frozenset(undeclared_satellites)
        self._satellites = frozenset(
            sat for by_sat in self._records.values() for sat in by_sat
        )
        self._spacing_tolerance_s = spacing_tolerance_s
        self._measured_interval, self._uniform = self._check_spacing()

    def _check_spacing(self) -> tuple[float, bool]:
        """Measure the inter-epoch spacing against the declared interval."""
        declared = self._header.epoch_interval
        if len(self._epochs) < 2:
            return declared, True
        t0 = self._epochs[0]
        offsets = np.array(
            [(e - t0).total_seconds() for e in self._epochs], dtype=np.float64,
        )
        steps = np.diff(offsets)
        measured = float(np.median(steps))
        uniform = bool(np.all(np.abs(steps - declared) <= self._spacing_tolerance_s))
        if not uniform:
            logger.warning(
                "Irregular epoch spacing: declared %.3f s, measured %.3f s "
                "(min %.3f s, max %.3f s); interpolation may be unreliable",
                declared, measured, float(steps.min()), float(steps.max()),
            )
        return measured, uniform

    # ------------------------------------------------------------------ #
    # Header accessors
    # ------------------------------------------------------------------ #

    @property
    def header(self) -> SP3Header:
        return self._header

    @property
    def version(self) -> Version:
        return self._header.version

    @property
    def data_type(self) -> DataType:
        return self._header.data_type

    @property
    def coord_system(self) -> str:
        return self._header.coord_system

    @property
    def orbit_type(self) -> OrbitType:
        return self._header.orbit_type

    @property
    def time_system(self) -> TimeScale:
        return self._header.time_system

    @property
    def agency(self) -> str:
        return self._header.agency

    @property
    def week_counter(self) -> tuple[int, float]:
        return self._header.week_counter

    @property
    def epoch_interval(self) -> timedelta:
        """Declared sampling interval."""
        return timedelta(seconds=self._header.epoch_interval)

    @property
    def mjd_start(self) -> tuple[int, float]:
        return self._header.mjd_start

    @property
    def data_used(self) -> DataUsed:
        return self._header.data_used

    @property
    def comments(self) -> tuple[str, ...]:
        return self._header.comments

    @property
    def declared_satellites(self) -> tuple[SatelliteId, ...]:
        return self._header.satellites

    @property
    def accuracy_codes(self) -> Mapping[SatelliteId, int]:
        return MappingProxyType(dict(zip(self._header.satellites, self._header.accuracy_codes)))

    # ------------------------------------------------------------------ #
    # Finalisation results
    # ------------------------------------------------------------------ #

    @property
    def measured_interval(self) -> float:
        """Median spacing between consecutive epochs, in seconds."""
        return self._measured_interval

    @property
    def uniform_sampling(self) -> bool:
        """False when any epoch step deviates from the declared interval."""
        return self._uniform

    @property
    def spacing_tolerance_s(self) -> float:
        return self._spacing_tolerance_s

    @property
    def warnings(self) -> tuple[ParseWarning, ...]:
        return self._warnings

    @property
    def undeclared_satellites(self) -> frozenset[SatelliteId]:
        """Satellites with records but absent from the header list."""
        return self._undeclared

    # ------------------------------------------------------------------ #
    # Time series queries
    # ------------------------------------------------------------------ #

    def epochs(self) -> Iterator[datetime]:
        """Iterate epochs in increasing order."""
        return iter(self._epochs)

    def first_epoch(self) -> datetime | None:
        return self._epochs[0] if self._epochs else None

    def last_epoch(self) -> datetime | None:
        return self._epochs[-1] if self._epochs else None

    def epoch_count(self) -> int:
        return len(self._epochs)

    def satellites(self) -> frozenset[SatelliteId]:
        """Satellites observed in at least one record."""
        return self._satellites

    def record(self, epoch: datetime, satellite: SatelliteId) -> EpochEntry:
        """Return everything recorded for a satellite at an epoch.

        Raises:
            KeyError: If the file holds no record for that pair.
        """
        epoch = as_epoch(epoch)
        try:
            return self._records[epoch][satellite]
        except KeyError:
            raise KeyError((epoch, satellite)) from None

    def position(self, epoch: datetime, satellite: SatelliteId) -> Vector | None:
        """Return (x, y, z) in km, or None if the record holds the sentinel.

        Raises:
            KeyError: If the file holds no record for that pair.
        """
        return self.record(epoch, satellite).position.position_km

    def clock(self, epoch: datetime, satellite: SatelliteId) -> float | None:
        """Return the clock correction in us, or None if sentinel.

        Raises:
            KeyError: If the file holds no record for that pair.
        """
        return self.record(epoch, satellite).position.clock_us

    def velocity(self, epoch: datetime, satellite: SatelliteId) -> Vector | None:
        """Return (vx, vy, vz) in dm/s, or None if absent or sentinel.

        Raises:
            KeyError: If the file holds no record for that pair.
        """
        entry = self.record(epoch, satellite)
        if entry.velocity is None:
            return None
        return entry.velocity.velocity_dm_s

    def series(self, satellite: SatelliteId) -> Iterator[tuple[datetime, PositionRecord]]:
        """Iterate (epoch, record) for one satellite, skipping epochs without a record."""
        for epoch in self._epochs:
            entry = self._records[epoch].get(satellite)
            if entry is not None:
                yield epoch, entry.position

    def positions(self) -> Iterator[tuple[datetime, SatelliteId, Vector]]:
        """Iterate (epoch, satellite, position_km) for every available position."""
        for epoch in self._epochs:
            by_sat = self._records[epoch]
            for sat in sorted(by_sat):
                position = by_sat[sat].position.position_km
                if position is not None:
                    yield epoch, sat, position

    def clocks(self) -> Iterator[tuple[datetime, SatelliteId, float]]:
        """Iterate (epoch, satellite, clock_us) for every available clock."""
        for epoch in self._epochs:
            by_sat = self._records[epoch]
            for sat in sorted(by_sat):
                clock = by_sat[sat].position.clock_us
                if clock is not None:
                    yield epoch, sat, clock

    def entries(self) -> Iterator[tuple[datetime, Mapping[SatelliteId, EpochEntry]]]:
        """Iterate (epoch, satellite -> entry) in epoch order."""
        for epoch in self._epochs:
            yield epoch, self._records[epoch]

    def interpolate(
        self, satellite: SatelliteId, target: datetime, order: int = 9,
    ) -> InterpolatedPosition:
        """Lagrange-interpolate a satellite position; see ``interpolation.interpolate``."""
        return interpolate(self, satellite, target, order)

    def __repr__(self) -> str:
        return (
            f"SP3Product(version={self.version.value}, agency={self.agency!r}, "
            f"epochs={len(self._epochs)}, satellites={len(self._satellites)})"
        )
