# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Port interfaces for SP3 product sources.

Adapters implement these to handle the actual input transport.
"""
from gnss_sp3.ports.product_source import ProductSource

__all__ = ["ProductSource"]
