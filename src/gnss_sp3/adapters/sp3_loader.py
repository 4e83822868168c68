# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
SP3 file loader.

Accepts a filesystem path, raw bytes, text content or an open file object
and hands the decoded text to the domain parser. Decompression and network
transport are left to the caller. I/O failures propagate unchanged as
OSError.
"""
import logging
import os

from gnss_sp3.domain.product import SP3Product
from gnss_sp3.domain.record_parser import ParserConfig
from gnss_sp3.domain.sp3_parser import parse_sp3
from gnss_sp3.ports.product_source import ProductSource, Source

logger = logging.getLogger(__name__)

_ENCODING = "ascii"


def _decode(data: bytes) -> str:
    return data.decode(_ENCODING, errors="replace")


def _read_text(source: Source) -> tuple[str, str]:
    """Return (content, description of the source)."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return _decode(bytes(source)), f"<{len(source)} bytes>"
    if isinstance(source, str) and "\n" in source:
        return source, "<text>"
    if isinstance(source, (str, os.PathLike)):
        path = os.fspath(source)
        with open(path, "rb") as f:
            return _decode(f.read()), path
    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, bytes):
            data = _decode(data)
        return data, getattr(source, "name", "<stream>")
    raise TypeError(f"unsupported SP3 source type: {type(source).__name__}")


class SP3FileLoader(ProductSource):
    """Loads SP3 products from paths, bytes, text or file objects."""

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()

    @property
    def config(self) -> ParserConfig:
        return self._config

    def load(self, source: Source) -> SP3Product:
        """Read and parse one SP3 product.

        Raises:
            OSError: If the file cannot be read.
            HeaderError, MalformedRecordError, OrderingError: On invalid content.
        """
        content, origin = _read_text(source)
        logger.debug("Loading SP3 product from %s", origin)
        product = parse_sp3(content, self._config)
        if product.warnings:
            logger.info("%s: %d parse warnings", origin, len(product.warnings))
        return product


def load(source: Source, config: ParserConfig | None = None) -> SP3Product:
    """Load one SP3 product; see ``SP3FileLoader.load``."""
    return SP3FileLoader(config).load(source)
