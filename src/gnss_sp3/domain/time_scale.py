# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Time scales and SP3 calendar-field decoding.

SP3 epochs are calendar readings in the file's time system (GPS time for
most products). They are carried as timezone-aware datetimes with a UTC
tzinfo purely as a calendar carrier; the scale itself is a property of the
product.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum


class TimeScale(Enum):
    """Time systems declared in the first %c header line."""
    GPS = "GPS"
    GLO = "GLO"
    GAL = "GAL"
    QZS = "QZS"
    BDT = "BDT"
    IRN = "IRN"
    TAI = "TAI"
    UTC = "UTC"

    @classmethod
    def from_label(cls, label: str) -> "TimeScale":
        """Decode a %c time-system label; 'ccc' placeholders mean GPS."""
        label = label.strip().upper()
        if not label or label == "CCC":
            return cls.GPS
        return cls(label)


def as_epoch(dt: datetime) -> datetime:
    """Ensure datetime is timezone-aware (treat naive as the product's scale)."""
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def parse_calendar(line: str, offset: int = 3) -> datetime:
    """Decode the fixed-width calendar block used by '#' and '*' lines.

    The block is ``yyyy mm dd hh mm ss.ssssssss`` with field widths
    4, 3, 3, 3, 3 and 12 starting at ``offset``.

    Raises:
        ValueError: If a field is not numeric or the date is invalid.
    """
    fields = (
        line[offset:offset + 4],
        line[offset + 4:offset + 7],
        line[offset + 7:offset + 10],
        line[offset + 10:offset + 13],
        line[offset + 13:offset + 16],
    )
    year, month, day, hour, minute = (int(f) for f in fields)
    seconds = float(line[offset + 16:offset + 28])
    if not 0.0 <= seconds < 61.0:
        raise ValueError(f"seconds out of range: {seconds}")
    base = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    return base + timedelta(microseconds=round(seconds * 1e6))
