# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Adapters for SP3 input.

File access and byte decoding are confined to this layer.
"""
from gnss_sp3.adapters.sp3_loader import SP3FileLoader, load

__all__ = ["SP3FileLoader", "load"]
