# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Satellite identifiers as they appear in SP3 files.

An identifier is a one-letter constellation tag followed by a two-digit
PRN-like number ("G01", "R24", "E05"). Early SP3-c products leave the tag
blank or write a digit; those are GPS satellites.
"""
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering


class Constellation(Enum):
    """GNSS constellation tags used in SP3 identifiers and %c lines."""
    GPS = "G"
    GLONASS = "R"
    GALILEO = "E"
    BEIDOU = "C"
    QZSS = "J"
    IRNSS = "I"
    SBAS = "S"
    LEO = "L"
    MIXED = "M"

    @classmethod
    def from_tag(cls, tag: str) -> "Constellation":
        """Decode a constellation tag; blank and digits mean GPS."""
        tag = tag.strip()
        if not tag or tag.isdigit():
            return cls.GPS
        try:
            return cls(tag.upper())
        except ValueError:
            raise ValueError(f"unknown constellation tag '{tag}'") from None


@total_ordering
@dataclass(frozen=True)
class SatelliteId:
    """Constellation tag plus numeric designator."""
    constellation: Constellation
    prn: int

    def __post_init__(self) -> None:
        if self.constellation is Constellation.MIXED:
            raise ValueError("a satellite cannot belong to the mixed constellation")
        if not 0 < self.prn < 100:
            raise ValueError(f"PRN out of range: {self.prn}")

    @classmethod
    def parse(cls, text: str) -> "SatelliteId":
        """Parse a 3-character SP3 identifier such as 'G01' or ' 5'.

        Raises:
            ValueError: If the tag or the number cannot be decoded.
        """
        raw = text.rstrip()
        if len(raw) < 2 or len(raw) > 3:
            raise ValueError(f"malformed satellite identifier '{text}'")
        raw = raw.rjust(3)
        constellation = Constellation.from_tag(raw[0])
        number = raw[1:].strip()
        if raw[0].isdigit():
            number = raw.strip()
        if not number.isdigit():
            raise ValueError(f"malformed satellite identifier '{text}'")
        return cls(constellation, int(number))

    def __str__(self) -> str:
        return f"{self.constellation.value}{self.prn:02d}"

    def __lt__(self, other: "SatelliteId") -> bool:
        if not isinstance(other, SatelliteId):
            return NotImplemented
        return (self.constellation.value, self.prn) < (other.constellation.value, other.prn)
