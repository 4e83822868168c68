# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Record parser: line-oriented state machine for the SP3 data section.

    AWAIT_EPOCH --'*'--> IN_EPOCH --'*'--> IN_EPOCH
         |                   |
         +------'EOF'--------+-----> DONE

Position, velocity and correlation lines are legal only inside an epoch.
Strictness is a ParserConfig choice: each recoverable condition either
raises or is collected as a ParseWarning on the resulting product.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from gnss_sp3.domain.errors import MalformedRecordError, OrderingError
from gnss_sp3.domain.header import SP3Header
from gnss_sp3.domain.product import (
    DEFAULT_SPACING_TOLERANCE_S,
    EpochEntry,
    ParseWarning,
    SP3Product,
)
from gnss_sp3.domain.records import (
    CorrelationRecord,
    PositionRecord,
    VelocityRecord,
    decode_correlation,
    decode_position,
    decode_velocity,
)
from gnss_sp3.domain.satellite import SatelliteId
from gnss_sp3.domain.time_scale import parse_calendar

logger = logging.getLogger(__name__)


class ParserState(Enum):
    AWAIT_EPOCH = "await_epoch"
    IN_EPOCH = "in_epoch"
    DONE = "done"


@dataclass(frozen=True)
class ParserConfig:
    """Strictness policy for recoverable conditions.

    Attributes:
        skip_malformed_records: Skip unrecognized or undecodable data lines
            and collect a warning instead of raising MalformedRecordError.
        reject_undeclared_velocity: Raise on 'V' lines when the header data
            type is position-only (otherwise they are ignored).
        require_eof: Raise when input ends without an 'EOF' line.
        reject_undeclared_satellites: Raise on records for satellites missing
            from the header list (otherwise they are flagged).
        spacing_tolerance_s: Allowed deviation of each epoch step from the
            declared interval before sampling is flagged as irregular.
    """
    skip_malformed_records: bool = False
    reject_undeclared_velocity: bool = False
    require_eof: bool = False
    reject_undeclared_satellites: bool = False
    spacing_tolerance_s: float = DEFAULT_SPACING_TOLERANCE_S

    @classmethod
    def strict(cls) -> "ParserConfig":
        return cls(
            skip_malformed_records=False,
            reject_undeclared_velocity=True,
            require_eof=True,
            reject_undeclared_satellites=True,
        )

    @classmethod
    def lenient(cls) -> "ParserConfig":
        return cls(
            skip_malformed_records=True,
            reject_undeclared_velocity=False,
            require_eof=False,
            reject_undeclared_satellites=False,
        )


@dataclass
class _EntryBuilder:
    position: PositionRecord
    velocity: VelocityRecord | None = None
    position_correlation: CorrelationRecord | None = None
    velocity_correlation: CorrelationRecord | None = None

    def build(self) -> EpochEntry:
        return EpochEntry(
            position=self.position,
            velocity=self.velocity,
            position_correlation=self.position_correlation,
            velocity_correlation=self.velocity_correlation,
        )


class RecordParser:
    """Consumes data-section lines under a parsed header's schema."""

    def __init__(self, header: SP3Header, config: ParserConfig | None = None) -> None:
        self._header = header
        self._config = config or ParserConfig()
        self._declared = frozenset(header.satellites)
        self._state = ParserState.AWAIT_EPOCH
        self._epochs: dict[datetime, dict[SatelliteId, _EntryBuilder]] = {}
        self._current: dict[SatelliteId, _EntryBuilder] | None = None
        self._previous_epoch: datetime | None = None
        self._last_kind: str | None = None
        self._last_satellite: SatelliteId | None = None
        self._warnings: list[ParseWarning] = []
        self._undeclared: set[SatelliteId] = set()
        self._ignored_velocity = 0
        self._last_line_number = 0

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def warnings(self) -> tuple[ParseWarning, ...]:
        return tuple(self._warnings)

    def _warn(self, line_number: int | None, message: str, line: str = "") -> None:
        self._warnings.append(ParseWarning(line_number, message, line))
        if line_number is None:
            logger.warning("%s", message)
        else:
            logger.warning("line %d: %s", line_number, message)

    def feed(self, line_number: int, line: str) -> None:
        """Apply one line (1-based line number) to the state machine.

        Raises:
            MalformedRecordError: Unrecognized or illegal record, unless
                ``skip_malformed_records`` is set.
            OrderingError: Epoch not strictly after the previous one.
        """
        self._last_line_number = line_number
        if self._state is ParserState.DONE:
            return
        line = line.rstrip()
        if not line or line.startswith("/*"):
            return
        if line.startswith("EOF"):
            self._state = ParserState.DONE
            return

        try:
            if line.startswith("*"):
                self._on_epoch(line_number, line)
            elif line.startswith(("EP", "EV")):
                self._on_correlation(line_number, line)
            elif line.startswith("P"):
                self._on_position(line_number, line)
            elif line.startswith("V"):
                self._on_velocity(line_number, line)
            else:
                raise MalformedRecordError(line_number, line)
        except MalformedRecordError as e:
            if not self._config.skip_malformed_records:
                raise
            self._warn(line_number, f"skipped malformed record: {e}", line)

    def _require_epoch(self, line_number: int, line: str) -> dict[SatelliteId, _EntryBuilder]:
        if self._state is not ParserState.IN_EPOCH or self._current is None:
            raise MalformedRecordError(line_number, line, "record outside of an epoch block")
        return self._current

    def _on_epoch(self, line_number: int, line: str) -> None:
        try:
            epoch = parse_calendar(line, 3)
        except ValueError as e:
            # Following records cannot be attributed until the next good marker.
            self._state = ParserState.AWAIT_EPOCH
            self._current = None
            raise MalformedRecordError(line_number, line, f"malformed epoch marker ({e})") from e
        if self._previous_epoch is not None and epoch <= self._previous_epoch:
            raise OrderingError(line_number, self._previous_epoch, epoch)
        if self._previous_epoch is None and epoch != self._header.start_epoch:
            self._warn(
                line_number,
                f"first epoch {epoch.isoformat()} differs from header start "
                f"{self._header.start_epoch.isoformat()}",
                line,
            )
        self._previous_epoch = epoch
        self._current = {}
        self._epochs[epoch] = self._current
        self._last_kind = None
        self._last_satellite = None
        self._state = ParserState.IN_EPOCH

    def _check_declared(self, line_number: int, line: str, satellite: SatelliteId) -> None:
        if satellite in self._declared:
            return
        if self._config.reject_undeclared_satellites:
            raise MalformedRecordError(
                line_number, line, f"satellite {satellite} not declared in header",
            )
        if satellite not in self._undeclared:
            self._undeclared.add(satellite)
            self._warn(line_number, f"satellite {satellite} not declared in header", line)

    def _on_position(self, line_number: int, line: str) -> None:
        # A rejected record must not leave its correlation line attached to the previous one.
        self._last_kind = None
        self._last_satellite = None
        current = self._require_epoch(line_number, line)
        try:
            record = decode_position(line)
        except ValueError as e:
            raise MalformedRecordError(line_number, line, f"bad position record ({e})") from e
        if record.satellite in current:
            raise MalformedRecordError(
                line_number, line, f"duplicate position record for {record.satellite}",
            )
        self._check_declared(line_number, line, record.satellite)
        current[record.satellite] = _EntryBuilder(position=record)
        self._last_kind = "P"
        self._last_satellite = record.satellite

    def _on_velocity(self, line_number: int, line: str) -> None:
        self._last_kind = None
        self._last_satellite = None
        current = self._require_epoch(line_number, line)
        if not self._header.data_type.includes_velocity:
            if self._config.reject_undeclared_velocity:
                raise MalformedRecordError(
                    line_number, line, "velocity record in a position-only file",
                )
            self._ignored_velocity += 1
            if self._ignored_velocity == 1:
                logger.warning(
                    "line %d: ignoring velocity records in a position-only file",
                    line_number,
                )
            self._warnings.append(
                ParseWarning(line_number, "velocity record ignored in a position-only file", line)
            )
            return
        try:
            record = decode_velocity(line)
        except ValueError as e:
            raise MalformedRecordError(line_number, line, f"bad velocity record ({e})") from e
        builder = current.get(record.satellite)
        if builder is None:
            raise MalformedRecordError(
                line_number, line, f"velocity record for {record.satellite} without position",
            )
        if builder.velocity is not None:
            raise MalformedRecordError(
                line_number, line, f"duplicate velocity record for {record.satellite}",
            )
        builder.velocity = record
        self._last_kind = "V"
        self._last_satellite = record.satellite

    def _on_correlation(self, line_number: int, line: str) -> None:
        current = self._require_epoch(line_number, line)
        expected = "P" if line.startswith("EP") else "V"
        if self._last_kind != expected or self._last_satellite is None:
            raise MalformedRecordError(
                line_number, line, f"correlation record not preceded by a '{expected}' record",
            )
        try:
            record = decode_correlation(line)
        except ValueError as e:
            raise MalformedRecordError(line_number, line, f"bad correlation record ({e})") from e
        builder = current[self._last_satellite]
        if expected == "P":
            builder.position_correlation = record
        else:
            builder.velocity_correlation = record
        self._last_kind = None

    def finish(self) -> SP3Product:
        """Close the data section and build the immutable product.

        Raises:
            MalformedRecordError: If the EOF marker is missing and
                ``require_eof`` is set.
        """
        if self._state is not ParserState.DONE:
            if self._config.require_eof:
                raise MalformedRecordError(
                    self._last_line_number + 1, "", "input ended without EOF marker",
                )
            self._warn(None, "input ended without EOF marker")
            self._state = ParserState.DONE

        if len(self._epochs) != self._header.epoch_count:
            self._warn(
                None,
                f"header declares {self._header.epoch_count} epochs, "
                f"file contains {len(self._epochs)}",
            )

        records = {
            epoch: {sat: builder.build() for sat, builder in by_sat.items()}
            for epoch, by_sat in self._epochs.items()
        }
        return SP3Product(
            header=self._header,
            records=records,
            warnings=tuple(self._warnings),
            undeclared_satellites=frozenset(self._undeclared),
            spacing_tolerance_s=self._config.spacing_tolerance_s,
        )
