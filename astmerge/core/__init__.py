# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Shared value types and tree helpers used by every merge stage.
"""

from __future__ import annotations

from .diagnostics import Diagnostic
from .src_location import SrcLocation

__all__ = ["Diagnostic", "SrcLocation"]
