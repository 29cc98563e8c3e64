# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
File processing order for the merge.

A file must be processed after every file holding one of its bases, because
resolving its base names and override links reads the *final* ids of those
bases.

Two strategies are available:

- `dependency-count`: stable sort by the number of direct dependencies of the
  file's first contract-like declaration. Cheap, and right for shallow
  hierarchies, but a base with more dependencies than its derived contract
  ends up after it.
- `topological`: builds the file graph from the dependency ids each run
  recorded and orders it with Kahn's algorithm. Ties (and files without any
  edge) keep the dependency-count order, so both strategies agree whenever the
  count heuristic is right. Cycles are reported instead of being ordered
  arbitrarily.
"""

from __future__ import annotations

import heapq
import logging
from typing import Mapping

from astmerge.core.nodes import CONTRACT_DEFINITION, find_all, root_contract
from astmerge.errors import DEPENDENCY_CYCLE, MergeError
from astmerge.merge.loader import Compilation
from astmerge.merge.origin_index import OriginIndex

logger = logging.getLogger(__name__)


def dependency_count(unit: dict) -> int:
	contract = root_contract(unit)
	if contract is None:
		return 0
	deps = contract.get("contractDependencies")
	return len(deps) if isinstance(deps, list) else 0


def order_by_dependency_count(units: Mapping[str, dict]) -> list[str]:
	"""Paths sorted ascending by dependency count; input order breaks ties."""
	return sorted(units.keys(), key=lambda path: dependency_count(units[path]))


def original_dependency_ids(contract: dict) -> list[int]:
	"""
	Ids of the declarations `contract` depends on, in the run's numbering.

	Combines the compiler's linearization, `contractDependencies` and the base
	specifiers, in that order, without duplicates.
	"""
	seen: dict[int, None] = {}
	linearized = contract.get("linearizedBaseContracts") or []
	for dep in linearized[1:]:
		if isinstance(dep, int):
			seen.setdefault(dep, None)
	for dep in contract.get("contractDependencies") or []:
		if isinstance(dep, int):
			seen.setdefault(dep, None)
	for spec in contract.get("baseContracts") or []:
		base = spec.get("baseName") if isinstance(spec, dict) else None
		ref = base.get("referencedDeclaration") if isinstance(base, dict) else None
		if isinstance(ref, int):
			seen.setdefault(ref, None)
	own = contract.get("id")
	return [dep for dep in seen if dep != own]


def file_dependencies(compilation: Compilation, known_paths: set[str]) -> list[str]:
	"""Other merged files holding a declaration that `compilation`'s main file depends on."""
	origin = OriginIndex.for_compilation(compilation)
	out: dict[str, None] = {}
	for contract in find_all(CONTRACT_DEFINITION, compilation.main):
		for dep_id in original_dependency_ids(contract):
			dep_path = origin.path_for_id(dep_id)
			if dep_path is not None and dep_path != compilation.path and dep_path in known_paths:
				out.setdefault(dep_path, None)
	return list(out)


def order_topologically(units: Mapping[str, dict], compilations: Mapping[str, Compilation]) -> list[str]:
	paths = list(units.keys())
	position = {path: i for i, path in enumerate(paths)}
	known = set(paths)

	deps_of: dict[str, list[str]] = {}
	dependents: dict[str, list[str]] = {path: [] for path in paths}
	for path in paths:
		comp = compilations.get(path)
		deps = file_dependencies(comp, known) if comp is not None else []
		deps_of[path] = deps
		for dep in deps:
			dependents[dep].append(path)

	remaining = {path: len(deps_of[path]) for path in paths}
	ready = [(dependency_count(units[p]), position[p], p) for p in paths if remaining[p] == 0]
	heapq.heapify(ready)
	order: list[str] = []
	while ready:
		_, _, path = heapq.heappop(ready)
		order.append(path)
		for dependent in dependents[path]:
			remaining[dependent] -= 1
			if remaining[dependent] == 0:
				heapq.heappush(ready, (dependency_count(units[dependent]), position[dependent], dependent))

	if len(order) != len(paths):
		stuck = sorted((p for p in paths if remaining[p] > 0), key=lambda p: position[p])
		raise MergeError(
			reason_code=DEPENDENCY_CYCLE,
			message=f"inheritance cycle between {len(stuck)} file(s)",
			path=stuck[0],
			related_paths=stuck,
		)
	return order


def order_units(
	units: Mapping[str, dict],
	compilations: Mapping[str, Compilation],
	*,
	strategy: str = "topological",
) -> list[str]:
	if strategy == "dependency-count":
		order = order_by_dependency_count(units)
	elif strategy == "topological":
		order = order_topologically(units, compilations)
	else:
		raise ValueError(f"unknown ordering strategy '{strategy}'")
	logger.info("processing order (%s): %s", strategy, ", ".join(order))
	return order


__all__ = [
	"dependency_count",
	"order_by_dependency_count",
	"original_dependency_ids",
	"file_dependencies",
	"order_topologically",
	"order_units",
]
