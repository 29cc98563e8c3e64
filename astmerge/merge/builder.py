# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Merge orchestration.

`merge_compilations` is the in-memory core: order the files, renumber them
into one id space, stamp each file's index into its source locations and
repair cross-file references. `make_build` wraps it with the disk side:
loading artifacts, reading source text and writing the debug snapshot.

The result mirrors what a single whole-project compilation would have
produced:

  input.sources[path]  = {"content": <source text>}
  output.sources[path] = {"ast": <merged tree>, "id": <file index>}
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from astmerge.config import MergeConfig
from astmerge.core.diagnostics import Diagnostic
from astmerge.errors import MALFORMED_ARTIFACT, MergeError
from astmerge.merge.loader import Compilation, load_compilations, read_source_content
from astmerge.merge.ordering import order_units
from astmerge.merge.renumber import renumber_unit, rewrite_src
from astmerge.merge.resolver import ReferenceResolver
from astmerge.merge.snapshot import write_snapshot

logger = logging.getLogger(__name__)


@dataclass
class MergedSources:
	order: list[str]
	sources: dict[str, dict[str, Any]]
	diagnostics: list[Diagnostic] = field(default_factory=list)
	next_id: int = 0


@dataclass
class MergeBuild:
	"""Merged trees plus the source text they were compiled from."""

	input: dict[str, dict[str, str]]
	output: dict[str, dict[str, Any]]
	order: list[str]
	diagnostics: list[Diagnostic] = field(default_factory=list)
	snapshot_sha256: str | None = None

	def to_dict(self) -> dict[str, Any]:
		return {
			"input": {"sources": self.input},
			"output": {"sources": self.output},
		}


def merge_compilations(compilations: Mapping[str, Compilation], config: MergeConfig) -> MergedSources:
	# Pristine trees stay untouched; every later stage works on copies.
	units = {path: copy.deepcopy(comp.main) for path, comp in compilations.items()}
	order = order_units(units, compilations, strategy=config.ordering)

	counter = config.first_id
	for index, path in enumerate(order):
		counter = renumber_unit(units[path], counter)
		try:
			rewrite_src(units[path], index)
		except ValueError as err:
			raise MergeError(
				reason_code=MALFORMED_ARTIFACT,
				message=str(err),
				path=path,
				artifact_path=str(compilations[path].artifact_path),
			) from err
	logger.info("renumbered %d file(s); next free id %d", len(order), counter)

	ordered = {path: units[path] for path in order}
	resolver = ReferenceResolver(
		compilations,
		ordered,
		root_prefix=config.root_prefix,
		unresolved=config.unresolved,
	)
	diagnostics = resolver.resolve_all(order)
	sources = {path: {"ast": ordered[path], "id": index} for index, path in enumerate(order)}
	return MergedSources(order=order, sources=sources, diagnostics=diagnostics, next_id=counter)


def make_build(config: MergeConfig, *, expected: Iterable[str] | None = None) -> MergeBuild:
	"""
	Load, merge and package every artifact of the project at `config.root`.

	Raises MergeError on missing or malformed inputs; nothing is written in
	that case.
	"""
	compilations = load_compilations(config, expected=expected)
	merged = merge_compilations(compilations, config)
	contents = {path: {"content": read_source_content(config, path)} for path in merged.order}

	snapshot_sha = None
	if config.write_snapshot:
		snapshot_sha = write_snapshot(config.snapshot_path, merged.sources)
	return MergeBuild(
		input=contents,
		output=merged.sources,
		order=merged.order,
		diagnostics=merged.diagnostics,
		snapshot_sha256=snapshot_sha,
	)


__all__ = ["MergedSources", "MergeBuild", "merge_compilations", "make_build"]
