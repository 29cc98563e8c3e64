# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Cross-file reference repair.

After renumbering, every merged tree carries final ids on its own nodes but its
*references* still use the private ids of the compiler run that produced it.
This module rewrites them, one file at a time in processing order:

1) import directives -> root id of the imported merged file,
2) inheritance specifiers -> final id of the named base (plus the id embedded
   in the base's `typeIdentifier`),
3) plain declaration references (`referencedDeclaration`, `scope`),
4) exported symbol tables, including names imported from other files,
5) override links of function-like declarations and, from those and the
   run's recorded dependencies, each contract's `contractDependencies` and
   `linearizedBaseContracts`.

A run's private id is interpreted against that run's pristine trees
(`OriginIndex`), turned into a run-independent `NodeKey` and looked up in the
merged trees (`MergedIndex`). For override links this is the source-range
match: the dependency's file is byte-identical in both runs even though the
numbering differs.

References that cannot be repaired are left untouched and reported according
to the configured policy ("skip", "warn" or "error").
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Mapping

from astmerge.core.diagnostics import Diagnostic
from astmerge.core.nodes import (
	CONTRACT_DEFINITION,
	IMPORT_DIRECTIVE,
	INHERITANCE_SPECIFIER,
	OVERRIDE_FIELDS,
	find_all,
	find_by_id,
	walk,
)
from astmerge.core.type_identifier import splice_declaration_id
from astmerge.errors import UNRESOLVED_REFERENCE, MergeError
from astmerge.merge.loader import Compilation, strip_root
from astmerge.merge.ordering import original_dependency_ids
from astmerge.merge.origin_index import MergedIndex, NodeKey, OriginIndex

logger = logging.getLogger(__name__)

_BASE_NAME_TYPES = ("UserDefinedTypeName", "IdentifierPath")
_REFERENCE_FIELDS = ("referencedDeclaration", "scope")


def _is_id(value: object) -> bool:
	return isinstance(value, int) and not isinstance(value, bool)


class ReferenceResolver:
	"""
	Rewrites run-private references in renumbered merged trees.

	`units` must already be renumbered; the resolver never assigns ids, it only
	reads them, so the merged index built up front stays valid throughout.
	"""

	def __init__(
		self,
		compilations: Mapping[str, Compilation],
		units: Mapping[str, dict],
		*,
		root_prefix: str = "",
		unresolved: str = "warn",
	) -> None:
		self.compilations = compilations
		self.units = units
		self.root_prefix = root_prefix
		self.unresolved = unresolved
		self.merged = MergedIndex.from_units(units)
		self.diagnostics: list[Diagnostic] = []
		self._origins: dict[str, OriginIndex] = {}

	def origin(self, path: str) -> OriginIndex:
		idx = self._origins.get(path)
		if idx is None:
			idx = OriginIndex.for_compilation(self.compilations[path])
			self._origins[path] = idx
		return idx

	def resolve_all(self, order: Iterable[str]) -> list[Diagnostic]:
		for path in order:
			self.resolve_unit(path)
		return self.diagnostics

	def resolve_unit(self, path: str) -> None:
		unit = self.units[path]
		origin = self.origin(path)
		# Capture the run's dependency ids before any reference is rewritten.
		pending = [(c, original_dependency_ids(c)) for c in find_all(CONTRACT_DEFINITION, unit)]

		self.resolve_imports(unit, path)
		done = self.resolve_inheritance(unit, path, origin)
		self.resolve_declaration_references(unit, origin, skip=done)
		self.resolve_exported_symbols(unit, path, origin)
		for contract, dep_ids in pending:
			self.resolve_contract(unit, contract, dep_ids, path, origin)
		logger.debug("resolved references in %s", path)

	# -- imports ---------------------------------------------------------

	def resolve_imports(self, unit: dict, path: str) -> None:
		for imp in find_all(IMPORT_DIRECTIVE, unit):
			target = imp.get("absolutePath")
			if not isinstance(target, str):
				continue
			target_unit = self.units.get(strip_root(target, self.root_prefix))
			if target_unit is None:
				# Not part of the merged set: an external import, left as is.
				logger.debug("%s: import of %s is external", path, target)
				continue
			imp["sourceUnit"] = target_unit["id"]

	# -- inheritance -----------------------------------------------------

	def resolve_inheritance(self, unit: dict, path: str, origin: OriginIndex) -> set[int]:
		"""Returns the identities (`id()`) of base-name nodes it rewrote."""
		done: set[int] = set()
		for spec in find_all(INHERITANCE_SPECIFIER, unit):
			base = spec.get("baseName")
			if not isinstance(base, dict) or base.get("nodeType") not in _BASE_NAME_TYPES:
				continue
			name = base.get("name")
			if not isinstance(name, str) or not name:
				continue
			new_id = self._base_declaration_id(name, base.get("referencedDeclaration"), origin)
			if new_id is None:
				self._unresolved("inheritance", f"cannot resolve base '{name}'", path, spec.get("id"))
				continue
			base["referencedDeclaration"] = new_id
			done.add(id(base))
			type_desc = base.get("typeDescriptions")
			if isinstance(type_desc, dict) and isinstance(type_desc.get("typeIdentifier"), str):
				try:
					type_desc["typeIdentifier"] = splice_declaration_id(type_desc["typeIdentifier"], name, new_id)
				except ValueError as err:
					self._unresolved("inheritance", str(err), path, spec.get("id"))
		return done

	def _base_declaration_id(self, name: str, orig_ref: object, origin: OriginIndex) -> int | None:
		decl_path = origin.path_for_id(orig_ref) if _is_id(orig_ref) else None
		if decl_path is None:
			decl_path = origin.declaring_path(name)
		target = self.units.get(decl_path) if decl_path is not None else None
		if target is None:
			return None
		exported = target.get("exportedSymbols", {})
		ids = exported.get(name) or exported.get(name.rsplit(".", 1)[-1])
		if ids:
			return ids[0]
		return self.merged.contract_id(decl_path, name)

	# -- plain references ------------------------------------------------

	def resolve_declaration_references(self, unit: dict, origin: OriginIndex, *, skip: set[int]) -> None:
		for obj in walk(unit):
			if id(obj) in skip:
				continue
			for field_name in _REFERENCE_FIELDS:
				ref = obj.get(field_name)
				# Negative ids are compiler builtins (require, msg, ...).
				if not _is_id(ref) or ref < 0:
					continue
				new_id = self._map_id(ref, origin)
				if new_id is not None:
					obj[field_name] = new_id

	# -- exported symbols ------------------------------------------------

	def resolve_exported_symbols(self, unit: dict, path: str, origin: OriginIndex) -> None:
		orig_exported = self.compilations[path].main.get("exportedSymbols", {})
		exported = unit.setdefault("exportedSymbols", {})
		for name, ids in orig_exported.items():
			if not isinstance(ids, list):
				continue
			keys = [origin.key_for_id(i) if _is_id(i) else None for i in ids]
			if any(k is not None and k.path not in self.units for k in keys):
				# Re-exported from an external file; nothing in the merged set to point at.
				logger.debug("%s: exported symbol '%s' comes from an external file", path, name)
				continue
			new_ids = [self._lookup(k) if k is not None else None for k in keys]
			if any(i is None for i in new_ids):
				self._unresolved("exported-symbol", f"cannot resolve exported symbol '{name}'", path, None)
				continue
			exported[name] = new_ids

	# -- contracts and overrides -----------------------------------------

	def resolve_contract(self, unit: dict, contract: dict, dep_ids: list[int], path: str, origin: OriginIndex) -> None:
		own = contract["id"]
		discovered: dict[int, None] = {}
		for dep in dep_ids:
			new_id = self._map_contract(dep, origin)
			if new_id is None:
				self._unresolved("dependency", f"cannot resolve dependency {dep} of '{contract.get('name')}'", path, own)
				continue
			discovered.setdefault(new_id, None)
		for parent in self.resolve_overrides(contract, dep_ids, path, origin):
			discovered.setdefault(parent, None)

		deps = [d for d in discovered if d != own]
		contract["contractDependencies"] = deps
		contract["linearizedBaseContracts"] = [own] + deps
		if isinstance(contract.get("name"), str):
			unit.setdefault("exportedSymbols", {})[contract["name"]] = [own]

	def resolve_overrides(self, contract: dict, dep_ids: list[int], path: str, origin: OriginIndex) -> list[int]:
		"""Rewrite override links inside `contract`; returns the owning contracts of the bases found."""
		parents: list[int] = []
		for node in walk(contract):
			field_name = OVERRIDE_FIELDS.get(node.get("nodeType"))
			bases = node.get(field_name) if field_name is not None else None
			if not isinstance(bases, list) or not bases:
				continue
			new_bases: list[int] = []
			for base_id in bases:
				found = self._resolve_base(base_id, dep_ids, origin) if _is_id(base_id) else None
				if found is None:
					self._unresolved("override", f"cannot resolve base of '{node.get('name')}' ({base_id})", path, node.get("id"))
					new_bases.append(base_id)
					continue
				new_id, parent = found
				new_bases.append(new_id)
				if parent is not None:
					parents.append(parent)
			node[field_name] = new_bases
		return parents

	def _resolve_base(self, base_id: int, dep_ids: list[int], origin: OriginIndex) -> tuple[int, int | None] | None:
		key = origin.key_for_id(base_id)
		new_id = self._lookup(key) if key is not None else None
		if new_id is None:
			return None
		container = self.merged.container_of(new_id)
		found_in = container.get("id") if container is not None else None

		owner = None
		for dep in dep_ids:
			dep_node = origin.node_for_id(dep)
			if dep_node is not None and find_by_id(dep_node, base_id) is not None:
				owner = dep
				break
		if owner is None:
			# Bases reached only transitively are not listed on the contract itself.
			logger.debug("base %d not declared in any direct dependency; using the run index", base_id)
			return new_id, found_in

		# The match must lie in the merged copy of the dependency declaring it.
		expected = self._map_contract(owner, origin)
		if expected is None or found_in != expected:
			logger.debug("base %d matched %d outside dependency %s", base_id, new_id, expected)
			return None
		return new_id, expected

	# -- id mapping ------------------------------------------------------

	def _lookup(self, key: NodeKey) -> int | None:
		"""Final id for `key`; a source-range hit must agree on the name."""
		found = self.merged.lookup(key, by_shape=False)
		if found is not None:
			node = self.merged.node(found)
			if key.name is None or node is None or node.get("name") == key.name:
				return found
		return self.merged.lookup(replace(key, offset=None, length=None))

	def _map_id(self, orig_id: int, origin: OriginIndex) -> int | None:
		key = origin.key_for_id(orig_id)
		return self._lookup(key) if key is not None else None

	def _map_contract(self, orig_id: int, origin: OriginIndex) -> int | None:
		key = origin.key_for_id(orig_id)
		if key is None:
			return None
		found = self._lookup(key)
		if found is None and key.name is not None:
			found = self.merged.contract_id(key.path, key.name)
		return found

	# -- policy ----------------------------------------------------------

	def _unresolved(self, phase: str, message: str, path: str, node_id: object) -> None:
		if self.unresolved == "error":
			raise MergeError(reason_code=UNRESOLVED_REFERENCE, message=f"{phase}: {message}", path=path)
		if self.unresolved == "skip":
			logger.debug("%s: %s (skipped)", path, message)
			return
		logger.warning("%s: unresolved %s reference: %s", path, phase, message)
		self.diagnostics.append(
			Diagnostic(
				message=message,
				code=UNRESOLVED_REFERENCE,
				phase=phase,
				path=path,
				node_id=node_id if _is_id(node_id) else None,
			)
		)


__all__ = ["ReferenceResolver"]
