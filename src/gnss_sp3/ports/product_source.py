# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interface for SP3 product sources.

Adapters handle file access; the domain only sees text.
"""
import os
from typing import IO, Protocol, Union, runtime_checkable

from gnss_sp3.domain.product import SP3Product

Source = Union[str, bytes, "os.PathLike[str]", IO[str], IO[bytes]]


@runtime_checkable
class ProductSource(Protocol):
    """Port for loading parsed SP3 products."""

    def load(self, source: Source) -> SP3Product:
        """Read and parse one SP3 product."""
        ...
