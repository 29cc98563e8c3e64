# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Loading of per-file compiler artifacts.

The compiler is run once per source file. Each run writes one artifact holding
the syntax trees of the compiled file *and* of every file it imports, all
numbered consistently within that run (but not across runs). Artifacts are
named after the compiled file (`Token.ast.json`, or the raw compiler names
`Token.sol_json.ast` / `Token.tsol_json.ast`).

For every artifact we keep:
- the pristine trees of the whole run (`Compilation.units`), used later to
  interpret the run's private ids, and
- the run's *main* unit: the tree of the file the run was started for.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from astmerge.config import MergeConfig
from astmerge.core.nodes import IMPORT_DIRECTIVE, find_all
from astmerge.errors import MALFORMED_ARTIFACT, MISSING_ARTIFACT, MergeError

logger = logging.getLogger(__name__)

ARTIFACT_SUFFIXES = (".ast.json", ".sol_json.ast", ".tsol_json.ast")


@dataclass(frozen=True)
class Compilation:
	"""One compiler run: the main file plus every unit it pulled in."""

	path: str
	units: list[dict]
	artifact_path: Path

	def unit_for_path(self, path: str) -> dict | None:
		for unit in self.units:
			if unit.get("absolutePath") == path:
				return unit
		return None

	@property
	def main(self) -> dict:
		unit = self.unit_for_path(self.path)
		if unit is None:
			raise KeyError(self.path)
		return unit


def file_stem(path: str) -> str:
	"""`contracts/token/Token.sol` -> `Token`."""
	name = PurePosixPath(path.replace("\\", "/")).name
	stem = name.split(".")[0]
	if not stem:
		raise ValueError(f"cannot derive a file name from '{path}'")
	return stem


def strip_root(path: str, root_prefix: str) -> str:
	"""Make a compiler `absolutePath` root-relative; other paths pass through."""
	norm = path.replace("\\", "/")
	if root_prefix in ("", "."):
		return norm
	if norm.startswith(root_prefix + "/"):
		return norm[len(root_prefix) + 1 :]
	return norm


def normalize_unit_paths(units: Iterable[dict], root_prefix: str) -> None:
	for unit in units:
		unit["absolutePath"] = strip_root(unit["absolutePath"], root_prefix)
		for imp in find_all(IMPORT_DIRECTIVE, unit):
			if isinstance(imp.get("absolutePath"), str):
				imp["absolutePath"] = strip_root(imp["absolutePath"], root_prefix)


def list_artifacts(ast_dir: Path) -> list[Path]:
	if not ast_dir.is_dir():
		raise MergeError(
			reason_code=MISSING_ARTIFACT,
			message=f"syntax tree directory does not exist: {ast_dir}",
			artifact_path=str(ast_dir),
		)
	return sorted(p for p in ast_dir.iterdir() if p.is_file() and p.name.endswith(ARTIFACT_SUFFIXES))


def _validate_units(data: Any, artifact: Path) -> list[dict]:
	# Single-tree artifacts are wrapped so every artifact reads as a list.
	units = data if isinstance(data, list) else [data]
	for unit in units:
		if not isinstance(unit, dict):
			raise MergeError(MALFORMED_ARTIFACT, "syntax tree must be a JSON object", artifact_path=str(artifact))
		if not isinstance(unit.get("absolutePath"), str) or not isinstance(unit.get("nodes"), list):
			raise MergeError(
				MALFORMED_ARTIFACT,
				"syntax tree is missing 'absolutePath' or 'nodes'",
				artifact_path=str(artifact),
			)
		if not isinstance(unit.get("exportedSymbols", {}), dict):
			raise MergeError(MALFORMED_ARTIFACT, "'exportedSymbols' must be an object", artifact_path=str(artifact))
		unit.setdefault("exportedSymbols", {})
	return units


def load_artifact(artifact: Path, root_prefix: str) -> list[dict]:
	try:
		data = json.loads(artifact.read_text(encoding="utf-8"))
	except FileNotFoundError as err:
		raise MergeError(MISSING_ARTIFACT, "syntax tree artifact disappeared", artifact_path=str(artifact)) from err
	except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
		raise MergeError(MALFORMED_ARTIFACT, f"cannot read syntax tree artifact: {err}", artifact_path=str(artifact)) from err
	units = _validate_units(data, artifact)
	normalize_unit_paths(units, root_prefix)
	return units


def _artifact_stem(artifact: Path) -> str:
	name = artifact.name
	for suffix in ARTIFACT_SUFFIXES:
		if name.endswith(suffix):
			return name[: -len(suffix)].split(".")[0]
	return name.split(".")[0]


def _is_project_file(config: MergeConfig, path: str) -> bool:
	if any(path == lib or path.startswith(lib.rstrip("/") + "/") for lib in config.library_dirs):
		return False
	return (config.root / path).is_file()


def select_main_unit(units: list[dict], artifact: Path, config: MergeConfig | None = None) -> dict | None:
	"""
	The unit of the file the run was started for.

	An imported library file may share the artifact's stem, so a unit whose
	source exists in the project (outside the library directories) wins;
	otherwise the last matching unit does, as the compiler lists imports first.
	"""
	stem = _artifact_stem(artifact)
	matches = [u for u in units if file_stem(u["absolutePath"]) == stem]
	if config is not None:
		local = [u for u in matches if _is_project_file(config, u["absolutePath"])]
		if local:
			return local[-1]
	return matches[-1] if matches else None


def load_compilations(config: MergeConfig, *, expected: Iterable[str] | None = None) -> dict[str, Compilation]:
	"""
	Load every artifact under `config.ast_path`.

	Returns compilations keyed by root-relative main path, in artifact name
	order. `expected` lists root-relative paths that must be present; any
	missing one aborts the load.
	"""
	out: dict[str, Compilation] = {}
	for artifact in list_artifacts(config.ast_path):
		units = load_artifact(artifact, config.root_prefix)
		main = select_main_unit(units, artifact, config)
		if main is None:
			logger.debug("no main syntax tree in %s; skipping", artifact)
			continue
		path = main["absolutePath"]
		if path in out:
			logger.warning("duplicate syntax tree for %s in %s (keeping %s)", path, artifact, out[path].artifact_path)
			continue
		out[path] = Compilation(path=path, units=units, artifact_path=artifact)
	logger.info("loaded %d syntax tree artifact(s) from %s", len(out), config.ast_path)

	if expected is not None:
		missing = sorted(set(expected) - set(out))
		if missing:
			raise MergeError(
				reason_code=MISSING_ARTIFACT,
				message=f"no syntax tree for {len(missing)} source file(s)",
				path=missing[0],
				related_paths=missing,
			)
	return out


def read_source_content(config: MergeConfig, path: str) -> str:
	"""
	Literal text of a root-relative source path.

	Project files live under the root; dependency files (imported by a package
	name) live under one of the library directories.
	"""
	candidates = [config.root / path] + [config.root / lib / path for lib in config.library_dirs]
	for candidate in candidates:
		if candidate.is_file():
			return candidate.read_text(encoding="utf-8")
	raise MergeError(
		reason_code=MISSING_ARTIFACT,
		message="source file not found under the root or any library directory",
		path=path,
		related_paths=[str(c) for c in candidates],
	)


__all__ = [
	"ARTIFACT_SUFFIXES",
	"Compilation",
	"file_stem",
	"strip_root",
	"normalize_unit_paths",
	"list_artifacts",
	"load_artifact",
	"select_main_unit",
	"load_compilations",
	"read_source_content",
]
