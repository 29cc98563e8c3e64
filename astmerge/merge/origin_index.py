# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Stable node keys across the pre/post-merge boundary.

A compiler run's ids are private to that run, so an id found in one run means
nothing in the merged collection. What *does* survive is where the node sits
in its file: the file is byte-identical in every run, so (path, nodeType,
offset, length) names the same node everywhere. When offsets cannot be trusted
we fall back to a structural fingerprint (enclosing contract, name, parameter
types).

`OriginIndex` interns a run's ids to keys; `MergedIndex` maps keys back to the
final ids of the merged trees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from astmerge.core.nodes import (
	CONTRACT_DEFINITION,
	is_node,
	iter_with_container,
	parameter_signature,
)
from astmerge.core.src_location import SrcLocation
from astmerge.errors import MALFORMED_ARTIFACT, MergeError


@dataclass(frozen=True)
class NodeKey:
	"""Run-independent identity of a node."""

	path: str
	node_type: str
	offset: int | None
	length: int | None
	name: str | None = None
	container: str | None = None
	signature: Tuple[str, ...] | None = None

	@property
	def range_key(self) -> Tuple[str, str, int, int] | None:
		if self.offset is None or self.length is None:
			return None
		return (self.path, self.node_type, self.offset, self.length)

	@property
	def shape_key(self) -> Tuple[str, str, str | None, str | None, Tuple[str, ...] | None]:
		return (self.path, self.node_type, self.container, self.name, self.signature)


def make_key(path: str, node: dict, container: dict | None) -> NodeKey:
	loc = SrcLocation.try_parse(node.get("src"))
	name = node.get("name")
	container_name = container.get("name") if container is not None else None
	return NodeKey(
		path=path,
		node_type=str(node.get("nodeType")),
		offset=loc.offset if loc is not None else None,
		length=loc.length if loc is not None else None,
		name=name if isinstance(name, str) else None,
		container=container_name if isinstance(container_name, str) else None,
		signature=parameter_signature(node),
	)


def _iter_keyed(units: Iterable[dict]):
	for unit in units:
		path = unit["absolutePath"]
		for node, container in iter_with_container(unit):
			if is_node(node) and isinstance(node.get("id"), int) and "nodeType" in node:
				yield path, node, container


@dataclass
class OriginIndex:
	"""
	Interpret the private ids of one compiler run.

	Built from the pristine trees of the run; never from merged trees.
	"""

	_key_by_id: Dict[int, NodeKey] = field(default_factory=dict)
	_node_by_id: Dict[int, dict] = field(default_factory=dict)
	_declaring_path: Dict[str, str] = field(default_factory=dict)

	@classmethod
	def for_compilation(cls, compilation) -> "OriginIndex":
		try:
			return cls.from_units(compilation.units)
		except ValueError as err:
			raise MergeError(
				reason_code=MALFORMED_ARTIFACT,
				message=str(err),
				path=compilation.path,
				artifact_path=str(compilation.artifact_path),
			) from err

	@classmethod
	def from_units(cls, units: Iterable[dict]) -> "OriginIndex":
		idx = cls()
		unit_list = list(units)
		for path, node, container in _iter_keyed(unit_list):
			idx._intern(node["id"], make_key(path, node, container), node)
		for unit in unit_list:
			for decl in unit.get("nodes", []):
				name = decl.get("name") if isinstance(decl, dict) else None
				if isinstance(name, str):
					idx._declaring_path.setdefault(name, unit["absolutePath"])
		return idx

	def _intern(self, node_id: int, key: NodeKey, node: dict) -> None:
		existing = self._key_by_id.get(node_id)
		if existing is not None and existing != key:
			# Ids are unique within one run; a clash means two runs were mixed.
			raise ValueError(f"node id {node_id} used for both {existing.path} and {key.path} in one run")
		self._key_by_id[node_id] = key
		self._node_by_id[node_id] = node

	def key_for_id(self, node_id: int) -> NodeKey | None:
		return self._key_by_id.get(node_id)

	def node_for_id(self, node_id: int) -> dict | None:
		return self._node_by_id.get(node_id)

	def path_for_id(self, node_id: int) -> str | None:
		key = self._key_by_id.get(node_id)
		return key.path if key is not None else None

	def declaring_path(self, name: str) -> str | None:
		"""Path of the file declaring top-level `name` (qualified names use their last part)."""
		path = self._declaring_path.get(name)
		if path is None and "." in name:
			path = self._declaring_path.get(name.rsplit(".", 1)[-1])
		return path


@dataclass
class MergedIndex:
	"""Final ids of the merged trees, addressable by `NodeKey`."""

	_id_by_range: Dict[Tuple[str, str, int, int], int] = field(default_factory=dict)
	_ids_by_shape: Dict[tuple, List[int]] = field(default_factory=dict)
	_node_by_id: Dict[int, dict] = field(default_factory=dict)
	_container_by_id: Dict[int, dict | None] = field(default_factory=dict)
	_contract_by_name: Dict[Tuple[str, str], int] = field(default_factory=dict)

	@classmethod
	def from_units(cls, units: Mapping[str, dict]) -> "MergedIndex":
		idx = cls()
		for path, node, container in _iter_keyed(units.values()):
			node_id = node["id"]
			key = make_key(path, node, container)
			if key.range_key is not None:
				idx._id_by_range.setdefault(key.range_key, node_id)
			idx._ids_by_shape.setdefault(key.shape_key, []).append(node_id)
			idx._node_by_id[node_id] = node
			idx._container_by_id[node_id] = container
			if node.get("nodeType") == CONTRACT_DEFINITION and isinstance(node.get("name"), str):
				idx._contract_by_name.setdefault((path, node["name"]), node_id)
		return idx

	def lookup(self, key: NodeKey, *, by_shape: bool = True) -> int | None:
		"""
		Final id for `key`.

		Source range first; the structural fingerprint is only used when it is
		unambiguous.
		"""
		if key.range_key is not None:
			found = self._id_by_range.get(key.range_key)
			if found is not None:
				return found
		if not by_shape or key.name is None:
			return None
		ids = self._ids_by_shape.get(key.shape_key, [])
		return ids[0] if len(ids) == 1 else None

	def node(self, node_id: int) -> dict | None:
		return self._node_by_id.get(node_id)

	def container_of(self, node_id: int) -> dict | None:
		return self._container_by_id.get(node_id)

	def contract_id(self, path: str, name: str) -> int | None:
		found = self._contract_by_name.get((path, name))
		if found is None and "." in name:
			found = self._contract_by_name.get((path, name.rsplit(".", 1)[-1]))
		return found


__all__ = ["NodeKey", "make_key", "OriginIndex", "MergedIndex"]
