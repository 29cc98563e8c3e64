# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Diagnostic records for references the merge could not repair.

Unresolved references never stop a merge unless the caller asks for it, so
they are collected here and surfaced alongside the build.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Diagnostic:
	"""One skipped or suspicious reference found while merging."""

	message: str
	code: str | None = None
	# Merge stage that produced the record ("import", "inheritance",
	# "override", "dependency", "exported-symbol").
	phase: str | None = None
	severity: str = "warning"
	path: str | None = None
	node_id: int | None = None
	notes: list[str] = field(default_factory=list)

	def to_dict(self) -> dict[str, Any]:
		return {
			"phase": self.phase,
			"code": self.code,
			"message": self.message,
			"severity": self.severity,
			"file": self.path,
			"node_id": self.node_id,
			"notes": list(self.notes),
		}

	def format_human(self) -> str:
		where = self.path if self.path is not None else "<merge>"
		text = f"{where}:?:?: {self.severity}: {self.message}"
		for note in self.notes:
			text += f"\n  note: {note}"
		return text


__all__ = ["Diagnostic"]
