# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Merge pipeline.

Stages run strictly one after another over the whole file set:

  loader -> ordering -> renumber (+ src rewrite) -> resolver -> builder

Only the id counter and the file index cross file boundaries, and both are
owned by `builder.merge_compilations`.
"""

from __future__ import annotations

__all__ = [
	"builder",
	"loader",
	"ordering",
	"origin_index",
	"renumber",
	"resolver",
	"snapshot",
]
