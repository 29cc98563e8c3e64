# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Merge configuration.

A project may keep its settings in a small JSON file (conventionally
`astmerge.json` next to the sources):

  {
    "root": ".",
    "ast_dir": "ast",
    "library_dirs": ["node_modules"],
    "ordering": "topological",
    "unresolved": "warn"
  }

Relative `root` values are resolved against the directory holding the config
file. Unknown keys are rejected so typos do not silently fall back to
defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

ORDERING_STRATEGIES = ("topological", "dependency-count")
UNRESOLVED_POLICIES = ("skip", "warn", "error")


@dataclass(frozen=True)
class MergeConfig:
	root: Path = Path(".")
	ast_dir: str = "ast"
	build_dir: str = "build"
	snapshot_name: str = "astBuild.json"
	library_dirs: tuple[str, ...] = ("node_modules",)
	ordering: str = "topological"
	unresolved: str = "warn"
	first_id: int = 0
	write_snapshot: bool = True

	def __post_init__(self) -> None:
		if self.ordering not in ORDERING_STRATEGIES:
			raise ValueError(f"unknown ordering '{self.ordering}' (expected one of: {', '.join(ORDERING_STRATEGIES)})")
		if self.unresolved not in UNRESOLVED_POLICIES:
			raise ValueError(f"unknown unresolved policy '{self.unresolved}' (expected one of: {', '.join(UNRESOLVED_POLICIES)})")
		if self.first_id < 0:
			raise ValueError("first_id must be non-negative")

	@property
	def root_prefix(self) -> str:
		"""Root as it appears at the start of compiler `absolutePath` values."""
		return str(self.root).replace("\\", "/").rstrip("/")

	@property
	def ast_path(self) -> Path:
		return self.root / self.ast_dir

	@property
	def snapshot_path(self) -> Path:
		return self.root / self.build_dir / self.snapshot_name

	def with_overrides(self, **overrides: Any) -> "MergeConfig":
		"""Copy with every non-None override applied."""
		return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def config_from_mapping(data: Mapping[str, Any], *, base_dir: Path | None = None) -> MergeConfig:
	allowed = {f.name for f in fields(MergeConfig)}
	unknown = sorted(set(data.keys()) - allowed)
	if unknown:
		raise ValueError(f"config has unknown fields: {', '.join(unknown)}")
	kwargs: dict[str, Any] = {}
	for key, value in data.items():
		if key == "root":
			if not isinstance(value, str) or not value:
				raise ValueError("config 'root' must be a non-empty string")
			root = Path(value)
			if not root.is_absolute() and base_dir is not None:
				root = base_dir / root
			kwargs["root"] = root
		elif key == "library_dirs":
			if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
				raise ValueError("config 'library_dirs' must be a list of strings")
			kwargs["library_dirs"] = tuple(value)
		elif key == "first_id":
			if not isinstance(value, int) or isinstance(value, bool):
				raise ValueError("config 'first_id' must be an integer")
			kwargs["first_id"] = value
		elif key == "write_snapshot":
			if not isinstance(value, bool):
				raise ValueError("config 'write_snapshot' must be a boolean")
			kwargs["write_snapshot"] = value
		else:
			if not isinstance(value, str):
				raise ValueError(f"config '{key}' must be a string")
			kwargs[key] = value
	if "root" not in kwargs and base_dir is not None:
		kwargs["root"] = base_dir
	return MergeConfig(**kwargs)


def load_config(path: Path) -> MergeConfig:
	try:
		data = json.loads(path.read_text(encoding="utf-8"))
	except json.JSONDecodeError as err:
		raise ValueError(f"config {path} is not valid JSON: {err}") from err
	if not isinstance(data, dict):
		raise ValueError("config must be a JSON object")
	return config_from_mapping(data, base_dir=path.parent)


__all__ = [
	"MergeConfig",
	"ORDERING_STRATEGIES",
	"UNRESOLVED_POLICIES",
	"config_from_mapping",
	"load_config",
]
