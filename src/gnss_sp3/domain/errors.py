# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
SP3 error taxonomy.

Parse-time errors (HeaderError, MalformedRecordError, OrderingError) abort
a load. Query-time errors (OutOfRangeError, InsufficientDataError) only
affect the failing interpolation request. I/O failures are not wrapped:
callers see the original OSError.
"""
from datetime import datetime


class SP3Error(ValueError):
    """Base class for every SP3 parsing, query and merge failure."""


class HeaderError(SP3Error):
    """Malformed or unsupported header field."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"header field '{field}': {message}")


class MalformedRecordError(SP3Error):
    """A data line does not match any record legal at this point."""

    def __init__(self, line_number: int, line: str, message: str = "unrecognized record") -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(f"line {line_number}: {message}: {line!r}")


class OrderingError(SP3Error):
    """Epoch marker not strictly later than the previous one."""

    def __init__(self, line_number: int, previous: datetime, current: datetime) -> None:
        self.line_number = line_number
        self.previous = previous
        self.current = current
        super().__init__(
            f"line {line_number}: epoch {current.isoformat()} does not follow "
            f"{previous.isoformat()}"
        )


class OutOfRangeError(SP3Error):
    """Interpolation requested outside the validity window."""

    def __init__(self, satellite, target: datetime,
                 tmin: datetime | None, tmax: datetime | None) -> None:
        self.satellite = satellite
        self.target = target
        self.tmin = tmin
        self.tmax = tmax
        if tmin is None or tmax is None or tmin > tmax:
            window = "no valid window"
        else:
            window = f"valid window [{tmin.isoformat()}, {tmax.isoformat()}]"
        super().__init__(f"{satellite} at {target.isoformat()}: {window}")


class InsufficientDataError(SP3Error):
    """Samples required by the interpolation window are missing or sentinel."""

    def __init__(self, satellite, target: datetime, message: str) -> None:
        self.satellite = satellite
        self.target = target
        super().__init__(f"{satellite} at {target.isoformat()}: {message}")


class MergeError(SP3Error):
    """Products cannot be combined under the merge policy."""
