# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""SP3 precise ephemeris parser.

Parses the SP3 (Standard Product #3) format used by the International
GNSS Service (IGS) for precise satellite ephemerides: post-processed,
centimeter-level positions, clock corrections and optionally velocities
for GNSS satellites.

SP3 format reference:
    https://files.igs.org/pub/data/format/sp3d.pdf

This parser handles SP3-c and SP3-d. Values keep the file's units:
kilometers for positions, microseconds for clocks, decimeters per second
for velocities.
"""
import logging

from gnss_sp3.domain.header import parse_header
from gnss_sp3.domain.product import SP3Product
from gnss_sp3.domain.record_parser import ParserConfig, RecordParser

logger = logging.getLogger(__name__)


def parse_sp3(content: str, config: ParserConfig | None = None) -> SP3Product:
    """Parse an SP3 format string into an SP3Product.

    Args:
        content: Complete SP3 file content as a string.
        config: Strictness policy; defaults to ``ParserConfig()``.

    Returns:
        Immutable SP3Product with every parsed record.

    Raises:
        HeaderError: If the header is malformed or unsupported.
        MalformedRecordError: If a data line is illegal and the
            configuration does not allow skipping it.
        OrderingError: If epochs are not strictly increasing.
    """
    lines = content.splitlines()
    header, body_start = parse_header(lines)
    logger.debug(
        "SP3-%s header: %d satellites, %d epochs declared, interval %.1f s",
        header.version.value, len(header.satellites), header.epoch_count,
        header.epoch_interval,
    )

    parser = RecordParser(header, config)
    for idx in range(body_start, len(lines)):
        parser.feed(idx + 1, lines[idx])
    product = parser.finish()

    logger.debug(
        "Parsed %d epochs, %d satellites, %d warnings",
        product.epoch_count(), len(product.satellites()), len(product.warnings),
    )
    return product
