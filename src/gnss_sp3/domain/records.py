# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
SP3 data records and fixed-column line decoders.

Column layout shared by 'P' and 'V' lines (0-based slices):

    [0]      record kind
    [1:4]    satellite identifier
    [4:18]   x   (km, or dm/s for velocity)
    [18:32]  y
    [32:46]  z
    [46:60]  clock (microseconds, or 1e-4 us/s for clock rate)
    [61:63]  [64:66]  [67:69]  x/y/z standard deviation exponents
    [70:73]  clock standard deviation exponent
    [74] clock event flag 'E', [75] clock prediction flag 'P',
    [78] maneuver flag 'M', [79] orbit prediction flag 'P'

Absent values are written as sentinels: 0.000000 for every coordinate of a
vector, 999999.999999 for clocks. Every numeric field goes through
``is_sentinel`` so positions, velocities and clocks agree on what "no data"
means.
"""
import math
from dataclasses import dataclass
from typing import Sequence

from gnss_sp3.domain.satellite import SatelliteId

SENTINEL_THRESHOLD = 999999.0
"""Magnitudes at or above this are the 999999.999999 'bad or absent' pattern."""

Vector = tuple[float, float, float]


def is_sentinel(value: float | None) -> bool:
    """True if a decoded numeric field means 'value not available'."""
    return value is None or not math.isfinite(value) or abs(value) >= SENTINEL_THRESHOLD


def _vector_or_none(components: Sequence[float]) -> Vector | None:
    if all(c == 0.0 for c in components) or any(is_sentinel(c) for c in components):
        return None
    return (components[0], components[1], components[2])


def _scalar_or_none(value: float | None) -> float | None:
    return None if is_sentinel(value) else value


@dataclass(frozen=True)
class PositionRecord:
    """One 'P' line: position (km) and clock correction (us)."""
    satellite: SatelliteId
    position_km: Vector | None  # None when sentinel
    clock_us: float | None  # None when sentinel
    position_sdev_exp: tuple[int | None, int | None, int | None] = (None, None, None)
    clock_sdev_exp: int | None = None
    clock_event: bool = False
    clock_predicted: bool = False
    maneuver: bool = False
    orbit_predicted: bool = False

    @property
    def available(self) -> bool:
        return self.position_km is not None


@dataclass(frozen=True)
class VelocityRecord:
    """One 'V' line: velocity (dm/s) and clock rate (1e-4 us/s)."""
    satellite: SatelliteId
    velocity_dm_s: Vector | None
    clock_rate: float | None
    velocity_sdev_exp: tuple[int | None, int | None, int | None] = (None, None, None)
    clock_rate_sdev_exp: int | None = None

    @property
    def available(self) -> bool:
        return self.velocity_dm_s is not None


@dataclass(frozen=True)
class CorrelationRecord:
    """One 'EP' or 'EV' line.

    Standard deviations are in mm and psec for EP lines, 1e-4 mm/s and
    1e-4 psec/s for EV lines. Correlation coefficients are scaled by 1e7
    and ordered xy, xz, xc, yz, yc, zc.
    """
    kind: str  # "EP" or "EV"
    sdev: tuple[int | None, int | None, int | None, int | None]
    correlation: tuple[int | None, ...]


def _float_field(line: str, start: int, stop: int) -> float:
    text = line[start:stop].strip()
    if not text:
        raise ValueError(f"empty numeric field at columns {start + 1}-{stop}")
    return float(text)


def _optional_float(line: str, start: int, stop: int) -> float | None:
    text = line[start:stop].strip()
    return float(text) if text else None


def _optional_int(line: str, start: int, stop: int) -> int | None:
    text = line[start:stop].strip()
    return int(text) if text else None


def _flag(line: str, column: int, marker: str) -> bool:
    return len(line) > column and line[column] == marker


def _decode_state_line(line: str, kind: str):
    if not line.startswith(kind):
        raise ValueError(f"not a '{kind}' record")
    if len(line.rstrip()) < 46:
        raise ValueError("record too short for three coordinates")
    satellite = SatelliteId.parse(line[1:4])
    components = tuple(_float_field(line, 4 + 14 * k, 18 + 14 * k) for k in range(3))
    clock = _optional_float(line, 46, 60)
    sdev = (
        _optional_int(line, 61, 63),
        _optional_int(line, 64, 66),
        _optional_int(line, 67, 69),
    )
    clock_sdev = _optional_int(line, 70, 73)
    return satellite, _vector_or_none(components), _scalar_or_none(clock), sdev, clock_sdev


def decode_position(line: str) -> PositionRecord:
    """Decode a 'P' line.

    Raises:
        ValueError: If a mandatory field is missing or not numeric.
    """
    satellite, position, clock, sdev, clock_sdev = _decode_state_line(line, "P")
    return PositionRecord(
        satellite=satellite,
        position_km=position,
        clock_us=clock,
        position_sdev_exp=sdev,
        clock_sdev_exp=clock_sdev,
        clock_event=_flag(line, 74, "E"),
        clock_predicted=_flag(line, 75, "P"),
        maneuver=_flag(line, 78, "M"),
        orbit_predicted=_flag(line, 79, "P"),
    )


def decode_velocity(line: str) -> VelocityRecord:
    """Decode a 'V' line.

    Raises:
        ValueError: If a mandatory field is missing or not numeric.
    """
    satellite, velocity, rate, sdev, rate_sdev = _decode_state_line(line, "V")
    return VelocityRecord(
        satellite=satellite,
        velocity_dm_s=velocity,
        clock_rate=rate,
        velocity_sdev_exp=sdev,
        clock_rate_sdev_exp=rate_sdev,
    )


_CORRELATION_COLUMNS = ((27, 35), (36, 44), (45, 53), (54, 62), (63, 71), (72, 80))


def decode_correlation(line: str) -> CorrelationRecord:
    """Decode an 'EP' or 'EV' line.

    Raises:
        ValueError: If a field is not an integer.
    """
    kind = line[:2]
    if kind not in ("EP", "EV"):
        raise ValueError("not a correlation record")
    sdev = (
        _optional_int(line, 4, 8),
        _optional_int(line, 9, 13),
        _optional_int(line, 14, 18),
        _optional_int(line, 19, 26),
    )
    correlation = tuple(_optional_int(line, a, b) for a, b in _CORRELATION_COLUMNS)
    return CorrelationRecord(kind=kind, sdev=sdev, correlation=correlation)
