# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

MISSING_ARTIFACT = "missing-artifact"
MALFORMED_ARTIFACT = "malformed-artifact"
DEPENDENCY_CYCLE = "dependency-cycle"
UNRESOLVED_REFERENCE = "unresolved-reference"


@dataclass(frozen=True)
class MergeError(Exception):
	"""
	A structured, serializable merge failure.

	Raising one aborts the whole merge; nothing is written and no build is
	returned.
	"""

	reason_code: str
	message: str
	path: str | None = None  # root-relative source path the failure is about
	artifact_path: str | None = None
	related_paths: list[str] | None = None

	def __str__(self) -> str:
		return self.format_human()

	def to_dict(self) -> dict[str, Any]:
		return {
			"reason_code": self.reason_code,
			"message": self.message,
			"path": self.path,
			"artifact_path": self.artifact_path,
			"related_paths": list(self.related_paths) if self.related_paths is not None else None,
		}

	def format_human(self) -> str:
		parts: list[str] = [f"[{self.reason_code}] {self.message}"]
		if self.path:
			parts.append(f"path={self.path}")
		if self.artifact_path:
			parts.append(f"artifact_path={self.artifact_path}")
		if self.related_paths:
			parts.append(f"related=({', '.join(self.related_paths)})")
		return " ".join(parts)


__all__ = [
	"MergeError",
	"MISSING_ARTIFACT",
	"MALFORMED_ARTIFACT",
	"DEPENDENCY_CYCLE",
	"UNRESOLVED_REFERENCE",
]
