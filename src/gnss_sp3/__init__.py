"""
GNSS SP3

Parse IGS SP3-c and SP3-d precise orbit products into an immutable
per-satellite time series, and interpolate satellite positions between
sampled epochs with Lagrange polynomials.
"""

from gnss_sp3.domain.errors import (
    SP3Error,
    HeaderError,
    MalformedRecordError,
    OrderingError,
    OutOfRangeError,
    InsufficientDataError,
    MergeError,
)
from gnss_sp3.domain.satellite import Constellation, SatelliteId
from gnss_sp3.domain.time_scale import TimeScale
from gnss_sp3.domain.header import (
    Version,
    DataType,
    OrbitType,
    DataUsed,
    SP3Header,
    parse_header,
)
from gnss_sp3.domain.records import (
    PositionRecord,
    VelocityRecord,
    CorrelationRecord,
    is_sentinel,
)
from gnss_sp3.domain.product import EpochEntry, ParseWarning, SP3Product
from gnss_sp3.domain.record_parser import ParserConfig, ParserState, RecordParser
from gnss_sp3.domain.sp3_parser import parse_sp3
from gnss_sp3.domain.interpolation import (
    InterpolatedPosition,
    interpolate,
    lagrange_weights,
    validity_window,
)
from gnss_sp3.domain.merge import merge_products
from gnss_sp3.adapters.sp3_loader import SP3FileLoader, load

__all__ = [
    "SP3Error",
    "HeaderError",
    "MalformedRecordError",
    "OrderingError",
    "OutOfRangeError",
    "InsufficientDataError",
    "MergeError",
    "Constellation",
    "SatelliteId",
    "TimeScale",
    "Version",
    "DataType",
    "OrbitType",
    "DataUsed",
    "SP3Header",
    "parse_header",
    "PositionRecord",
    "VelocityRecord",
    "CorrelationRecord",
    "is_sentinel",
    "EpochEntry",
    "ParseWarning",
    "SP3Product",
    "ParserConfig",
    "ParserState",
    "RecordParser",
    "parse_sp3",
    "InterpolatedPosition",
    "interpolate",
    "lagrange_weights",
    "validity_window",
    "merge_products",
    "SP3FileLoader",
    "load",
]
