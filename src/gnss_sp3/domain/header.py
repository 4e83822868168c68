# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
SP3 header parser.

Decodes the fixed-layout preamble of an SP3-c or SP3-d file: the two '#'
lines, the '+' satellite list, the '++' accuracy codes, the '%c' / '%f' /
'%i' descriptor lines and the '/*' comments.

SP3 format reference:
    https://files.igs.org/pub/data/format/sp3c.txt
    https://files.igs.org/pub/data/format/sp3d.pdf

The two revisions differ in the satellite-count columns, the maximum
number of satellites and the comment width. The version byte is decoded
first and selects a layout; everything else is shared.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Sequence

from gnss_sp3.domain.errors import HeaderError
from gnss_sp3.domain.satellite import Constellation, SatelliteId
from gnss_sp3.domain.time_scale import TimeScale, parse_calendar


class Version(Enum):
    """SP3 format revision."""
    C = "c"
    D = "d"

    @property
    def revision(self) -> int:
        """Numeric revision: c is the third SP3 revision, d the fourth."""
        return 3 if self is Version.C else 4

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.revision < other.revision


class DataType(Enum):
    """Record kinds declared in column 3 of the first header line."""
    POSITION = "P"
    VELOCITY = "V"

    @property
    def includes_velocity(self) -> bool:
        return self is DataType.VELOCITY


class OrbitType(Enum):
    """Orbit type label (columns 53-55 of the first header line)."""
    FIT = "FIT"  # fitted
    EXT = "EXT"  # extrapolated or predicted
    BCT = "BCT"  # broadcast
    BHN = "BHN"  # fitted after applying a Helmert transformation
    HLM = "HLM"  # Helmert transformed


_UNITARY_DATA_USED = frozenset({
    "u", "du", "s", "ds", "d", "dd",
    "U", "dU", "S", "dS", "D", "dD",
})


@dataclass(frozen=True)
class DataUsed:
    """Data-used descriptor: one code, two codes joined by '+', or empty.

    Phase codes are lower case (u, s, d), code observables upper case
    (U, S, D); a leading 'd' marks the time derivative. MIXED and ORBIT
    describe complex combinations and orbit combinations respectively.
    """
    components: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "DataUsed":
        content = text.strip()
        if not content:
            return cls(())
        if content.upper() == "MIXED":
            return cls(("MIXED",))
        parts = content.split("+")
        if len(parts) > 2:
            raise ValueError(f"too many data-used components in '{content}'")
        return cls(tuple(_decode_data_used(p) for p in parts))

    @property
    def complex_combination(self) -> bool:
        return self.components == ("MIXED",)

    @property
    def single(self) -> str | None:
        return self.components[0] if len(self.components) == 1 else None

    @property
    def combination(self) -> tuple[str, str] | None:
        if len(self.components) == 2:
            return self.components[0], self.components[1]
        return None

    def __str__(self) -> str:
        return "+".join(self.components)


def _decode_data_used(code: str) -> str:
    if code in _UNITARY_DATA_USED:
        return code
    if code.upper() in ("MIXED", "ORBIT"):
        return code.upper()
    raise ValueError(f"unknown data-used code '{code}'")


@dataclass(frozen=True)
class SP3Header:
    """Parsed SP3 header metadata."""
    version: Version
    data_type: DataType
    start_epoch: datetime
    epoch_count: int
    data_used: DataUsed
    coord_system: str
    orbit_type: OrbitType
    agency: str
    week_counter: tuple[int, float]  # GPS week, seconds of week
    epoch_interval: float  # seconds
    mjd_start: tuple[int, float]  # modified Julian day, fraction of day
    satellites: tuple[SatelliteId, ...]
    accuracy_codes: tuple[int, ...]  # aligned with satellites, 0 = unknown
    file_type: Constellation
    time_system: TimeScale
    position_base: float | None  # %f base for pos/vel standard deviations
    clock_base: float | None  # %f base for clock/rate standard deviations
    comments: tuple[str, ...]

    def accuracy_mm(self, satellite: SatelliteId) -> float | None:
        """Return the declared orbit accuracy (2**code mm) or None if unknown.

        Raises:
            KeyError: If the satellite is not declared in the header.
        """
        try:
            idx = self.satellites.index(satellite)
        except ValueError:
            raise KeyError(satellite) from None
        code = self.accuracy_codes[idx]
        return float(2 ** code) if code > 0 else None


@dataclass(frozen=True)
class _HeaderLayout:
    """Column scheme of one SP3 revision."""
    count_columns: slice
    max_satellites: int
    max_line_width: int


_LAYOUTS: dict[Version, _HeaderLayout] = {
    Version.C: _HeaderLayout(count_columns=slice(4, 6), max_satellites=85, max_line_width=60),
    Version.D: _HeaderLayout(count_columns=slice(3, 6), max_satellites=999, max_line_width=80),
}

# Lines that may appear between the "##" line and the first epoch.
_HEADER_PREFIXES = ("+", "%", "/*")

# Satellite identifiers and accuracy codes: 17 three-column slots from column 10.
_SLOT_START = 9
_SLOT_COUNT = 17


def _slots(line: str) -> list[str]:
    padded = line.ljust(_SLOT_START + 3 * _SLOT_COUNT)
    return [
        padded[_SLOT_START + 3 * k:_SLOT_START + 3 * k + 3]
        for k in range(_SLOT_COUNT)
    ]


def _parse_version(line: str) -> Version:
    try:
        return Version(line[1:2])
    except ValueError:
        raise HeaderError(
            "version", f"unknown or unsupported revision '{line[1:2]}'"
        ) from None


def _parse_line1(line: str, layout: _HeaderLayout) -> dict:
    """Decode '#' line: data type, start epoch, counts and labels."""
    line = line.ljust(60)
    try:
        data_type = DataType(line[2:3])
    except ValueError:
        raise HeaderError("data_type", f"unknown data type '{line[2:3]}'") from None

    try:
        start_epoch = parse_calendar(line, 3)
    except ValueError as e:
        raise HeaderError("start_epoch", f"malformed date/time '{line[3:31]}': {e}") from e

    try:
        epoch_count = int(line[31:39])
    except ValueError:
        raise HeaderError("epoch_count", f"non-numeric epoch count '{line[31:39]}'") from None
    if epoch_count < 0:
        raise HeaderError("epoch_count", f"negative epoch count {epoch_count}")

    try:
        data_used = DataUsed.parse(line[39:45])
    except ValueError as e:
        raise HeaderError("data_used", str(e)) from e

    try:
        orbit_type = OrbitType(line[51:55].strip())
    except ValueError:
        raise HeaderError("orbit_type", f"unknown orbit type '{line[51:55].strip()}'") from None

    return {
        "data_type": data_type,
        "start_epoch": start_epoch,
        "epoch_count": epoch_count,
        "data_used": data_used,
        "coord_system": line[45:51].strip(),
        "orbit_type": orbit_type,
        "agency": line[55:layout.max_line_width].strip(),
    }


def _parse_line2(line: str) -> dict:
    """Decode '##' line: week counter, interval and MJD."""
    try:
        week = int(line[2:7])
        seconds_of_week = float(line[7:23])
    except ValueError:
        raise HeaderError("week_counter", f"malformed week counter '{line[2:23]}'") from None
    if week < 0 or not 0.0 <= seconds_of_week < 604800.0:
        raise HeaderError("week_counter", f"week counter out of range '{line[2:23]}'")

    try:
        interval = float(line[23:38])
    except ValueError:
        raise HeaderError("epoch_interval", f"non-numeric epoch interval '{line[23:38]}'") from None
    if not interval > 0.0:
        raise HeaderError("epoch_interval", f"epoch interval must be positive, got {interval}")

    try:
        mjd = int(line[38:44])
        fraction = float(line[44:60] or "0")
    except ValueError:
        raise HeaderError("mjd_start", f"malformed modified Julian day '{line[38:60]}'") from None

    return {
        "week_counter": (week, seconds_of_week),
        "epoch_interval": interval,
        "mjd_start": (mjd, fraction),
    }


def _parse_file_type(text: str) -> Constellation:
    tag = text.strip()
    if tag.lower() == "cc":
        return Constellation.MIXED
    try:
        return Constellation.from_tag(tag)
    except ValueError as e:
        raise HeaderError("file_type", str(e)) from e


def _parse_base(text: str) -> float | None:
    value = float(text)
    return value if value > 0.0 else None


def parse_header(lines: Sequence[str]) -> tuple[SP3Header, int]:
    """Parse the SP3 header block.

    Reads from the first line up to, but not including, the first epoch
    marker ('*') or 'EOF' line.

    Args:
        lines: File content split into lines (line terminators removed).

    Returns:
        (header, index of the first line after the header block).

    Raises:
        HeaderError: If a header field is missing, malformed or unsupported.
    """
    if not lines or not lines[0].startswith("#") or lines[0].startswith("##"):
        raise HeaderError("header", "missing first header line '#'")
    line1 = lines[0].rstrip()
    if len(line1) < 39:
        raise HeaderError("header", f"first header line too short ({len(line1)} columns)")

    version = _parse_version(line1)
    layout = _LAYOUTS[version]
    fields = _parse_line1(line1, layout)

    if len(lines) < 2 or not lines[1].startswith("##"):
        raise HeaderError("header", "missing second header line '##'")
    fields.update(_parse_line2(lines[1].rstrip()))

    declared_count: int | None = None
    satellites: list[SatelliteId] = []
    codes: list[int] = []
    file_type = Constellation.GPS
    time_system = TimeScale.GPS
    position_base: float | None = None
    clock_base: float | None = None
    comments: list[str] = []
    seen_c = seen_f = False

    idx = 2
    while idx < len(lines):
        line = lines[idx].rstrip()
        if line and not line.startswith(_HEADER_PREFIXES):
            break
        idx += 1

        if not line:
            continue
        if line.startswith("++"):
            for slot in _slots(line):
                if not slot.strip():
                    continue
                try:
                    codes.append(int(slot))
                except ValueError:
                    raise HeaderError("accuracy", f"non-numeric accuracy code '{slot}'") from None
        elif line.startswith("+"):
            if declared_count is None:
                try:
                    declared_count = int(line[layout.count_columns])
                except ValueError:
                    raise HeaderError(
                        "satellite_count",
                        f"non-numeric satellite count '{line[layout.count_columns]}'",
                    ) from None
            for slot in _slots(line):
                if not slot.strip() or slot.strip().strip("0") == "":
                    continue
                try:
                    satellites.append(SatelliteId.parse(slot))
                except ValueError as e:
                    raise HeaderError("satellite_list", str(e)) from e
        elif line.startswith("%c"):
            if not seen_c:
                seen_c = True
                file_type = _parse_file_type(line[3:5])
                try:
                    time_system = TimeScale.from_label(line[9:12])
                except ValueError:
                    raise HeaderError(
                        "time_system", f"unknown time system '{line[9:12].strip()}'"
                    ) from None
        elif line.startswith("%f"):
            if not seen_f:
                seen_f = True
                try:
                    position_base = _parse_base(line[3:13])
                    clock_base = _parse_base(line[14:26])
                except ValueError:
                    raise HeaderError("accuracy", f"malformed %f base line '{line}'") from None
        elif line.startswith("%i"):
            continue
        else:
            comments.append(line[2:layout.max_line_width].strip())

    if declared_count is None:
        raise HeaderError("satellite_count", "missing '+' satellite list")
    if declared_count > layout.max_satellites:
        raise HeaderError(
            "satellite_count",
            f"revision {version.value} allows at most {layout.max_satellites} "
            f"satellites, header declares {declared_count}",
        )
    if len(satellites) != declared_count:
        raise HeaderError(
            "satellite_list",
            f"declared {declared_count} satellites, listed {len(satellites)}",
        )
    if len(set(satellites)) != len(satellites):
        raise HeaderError("satellite_list", "duplicate satellite identifiers")

    # Revision c pads '++' lines with zeros up to 85 codes; d may omit them.
    codes = (codes + [0] * declared_count)[:declared_count]

    header = SP3Header(
        version=version,
        satellites=tuple(satellites),
        accuracy_codes=tuple(codes),
        file_type=file_type,
        time_system=time_system,
        position_base=position_base,
        clock_base=clock_base,
        comments=tuple(comments),
        **fields,
    )
    return header, idx
