# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source location descriptors as emitted by the compiler.

Every node carries `src = "offset:length:fileIndex"`. The offset/length pair is
a property of the file's bytes and survives independent compilations; the
file index is an artifact of one particular compilation and is rewritten on
merge.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class SrcLocation:
	"""Represents a parsed `offset:length:fileIndex` descriptor."""

	offset: int
	length: int
	file_index: int

	@classmethod
	def parse(cls, raw: Any) -> "SrcLocation":
		"""
		Parse a `src` string.

		Raises ValueError on anything that is not three colon-separated integers.
		"""
		if not isinstance(raw, str):
			raise ValueError(f"src must be a string, got {type(raw).__name__}")
		parts = raw.split(":")
		if len(parts) != 3:
			raise ValueError(f"invalid src descriptor '{raw}'")
		try:
			offset, length, file_index = (int(p) for p in parts)
		except ValueError as err:
			raise ValueError(f"invalid src descriptor '{raw}'") from err
		return cls(offset=offset, length=length, file_index=file_index)

	@classmethod
	def try_parse(cls, raw: Any) -> "SrcLocation | None":
		try:
			return cls.parse(raw)
		except ValueError:
			return None

	def with_file_index(self, file_index: int) -> "SrcLocation":
		return replace(self, file_index=file_index)

	def __str__(self) -> str:
		return f"{self.offset}:{self.length}:{self.file_index}"


__all__ = ["SrcLocation"]
