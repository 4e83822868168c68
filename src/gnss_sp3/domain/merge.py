# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Combination of several SP3 products into one extended time series.

Inputs are never modified; a new product is returned.

Conflict policy:
    - time system, coordinate system and epoch interval must agree;
    - identical (epoch, satellite) entries in several inputs are kept once,
      differing ones are a conflict;
    - the merged version is the highest input version, and velocity is
      kept only if every input carries it;
    - agency, orbit type and data used come from the first product,
      start epoch / week counter / MJD from the product starting earliest.
"""
import logging
import math
from dataclasses import replace
from datetime import datetime

from gnss_sp3.domain.errors import MergeError
from gnss_sp3.domain.header import DataType, SP3Header
from gnss_sp3.domain.product import EpochEntry, SP3Product
from gnss_sp3.domain.satellite import SatelliteId

logger = logging.getLogger(__name__)


def _check_compatible(reference: SP3Product, other: SP3Product) -> None:
    if other.time_system is not reference.time_system:
        raise MergeError(
            f"time system mismatch: {reference.time_system.value} vs {other.time_system.value}"
        )
    if other.coord_system != reference.coord_system:
        raise MergeError(
            f"coordinate system mismatch: {reference.coord_system!r} vs {other.coord_system!r}"
        )
    if not math.isclose(
        other.header.epoch_interval, reference.header.epoch_interval, abs_tol=1e-9,
    ):
        raise MergeError(
            f"epoch interval mismatch: {reference.header.epoch_interval} s "
            f"vs {other.header.epoch_interval} s"
        )


def _strip_velocity(entry: EpochEntry) -> EpochEntry:
    return EpochEntry(position=entry.position, position_correlation=entry.position_correlation)


def merge_products(first: SP3Product, *others: SP3Product) -> SP3Product:
    """Merge products into a new SP3Product.

    Args:
        first: Reference product; its labels win where inputs may differ.
        *others: Further products to merge in.

    Returns:
        New product covering the union of epochs and satellites.

    Raises:
        MergeError: On incompatible headers or conflicting overlapping records.
    """
    products = (first, *others)
    for other in others:
        _check_compatible(first, other)

    keep_velocity = all(p.data_type.includes_velocity for p in products)
    merged: dict[datetime, dict[SatelliteId, EpochEntry]] = {}
    for product in products:
        for epoch, by_sat in product.entries():
            target = merged.setdefault(epoch, {})
            for sat, entry in by_sat.items():
                if not keep_velocity:
                    entry = _strip_velocity(entry)
                existing = target.get(sat)
                if existing is None:
                    target[sat] = entry
                elif existing != entry:
                    raise MergeError(
                        f"conflicting records for {sat} at {epoch.isoformat()}"
                    )

    epochs = sorted(merged)
    earliest = min(
        (p for p in products if p.first_epoch() is not None),
        key=lambda p: p.first_epoch(),
        default=first,
    )
    satellites: set[SatelliteId] = set()
    codes: dict[SatelliteId, int] = {}
    for product in products:
        satellites.update(product.declared_satellites)
        for sat, code in product.accuracy_codes.items():
            codes.setdefault(sat, code)
    ordered = tuple(sorted(satellites))

    header: SP3Header = replace(
        first.header,
        version=max((p.version for p in products), key=lambda v: v.revision),
        data_type=DataType.VELOCITY if keep_velocity else DataType.POSITION,
        start_epoch=epochs[0] if epochs else earliest.header.start_epoch,
        epoch_count=len(epochs),
        week_counter=earliest.week_counter,
        mjd_start=earliest.mjd_start,
        satellites=ordered,
        accuracy_codes=tuple(codes[sat] for sat in ordered),
        comments=tuple(c for p in products for c in p.comments),
    )
    logger.debug(
        "Merged %d products into %d epochs, %d satellites",
        len(products), len(epochs), len(ordered),
    )
    return SP3Product(
        header=header,
        records={epoch: merged[epoch] for epoch in epochs},
        warnings=tuple(w for p in products for w in p.warnings),
        undeclared_satellites=frozenset().union(
            *(p.undeclared_satellites for p in products)
        ) - satellites,
        spacing_tolerance_s=first.spacing_tolerance_s,
    )
