# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Global id assignment for merged syntax trees.

Ids are handed out from one counter threaded through every file in processing
order. Each file is renumbered on its own, starting at the counter:

- an id at or above the start that no other node of the file took first is
  kept, so the compiler's own numbering (children before parents) survives;
- every other node (no id, an id below the start, a repeated id) gets a fresh
  id above the highest id in the file, in post-order.

The returned counter lies above every id of the file, so ids stay unique
across the whole collection and a second pass from the same start is a no-op.
"""

from __future__ import annotations

from typing import Any

from astmerge.core.nodes import is_node, walk
from astmerge.core.src_location import SrcLocation

# Fields holding `offset:length:fileIndex` descriptors.
_SRC_FIELDS = ("src", "nameLocation")
_SRC_LIST_FIELDS = ("nameLocations",)


def _is_id(value: Any) -> bool:
	return isinstance(value, int) and not isinstance(value, bool)


def _post_order(tree: Any) -> list[dict]:
	out: list[dict] = []
	stack: list[tuple[Any, bool]] = [(tree, False)]
	while stack:
		cur, children_done = stack.pop()
		if isinstance(cur, dict):
			if children_done:
				if is_node(cur):
					out.append(cur)
				continue
			stack.append((cur, True))
			# exportedSymbols is keyed by user names, which may well be "id".
			children = [v for k, v in cur.items() if k != "exportedSymbols" and isinstance(v, (dict, list))]
			stack.extend((v, False) for v in reversed(children))
		elif isinstance(cur, list):
			stack.extend((v, False) for v in reversed(cur) if isinstance(v, (dict, list)))
	return out


def renumber_tree(tree: Any, counter: int) -> int:
	"""
	Renumber every node in `tree` starting at `counter`.

	Returns the next free counter value.
	"""
	nodes = _post_order(tree)
	top = max((n["id"] for n in nodes if _is_id(n.get("id")) and n["id"] >= counter), default=counter - 1)
	fresh = top + 1
	kept: set[int] = set()
	for node in nodes:
		cur = node.get("id")
		if _is_id(cur) and cur >= counter and cur not in kept:
			kept.add(cur)
			continue
		node["id"] = fresh
		fresh += 1
	return fresh


def normalize_exported_symbols(unit: dict) -> None:
	"""Point every exported name declared in this unit at its declaration's id."""
	exported = unit.get("exportedSymbols")
	if not isinstance(exported, dict):
		return
	declared: dict[str, int] = {}
	for decl in unit.get("nodes", []):
		if isinstance(decl, dict) and isinstance(decl.get("name"), str) and isinstance(decl.get("id"), int):
			declared.setdefault(decl["name"], decl["id"])
	for name in exported:
		if name in declared:
			exported[name] = [declared[name]]


def renumber_unit(unit: dict, counter: int) -> int:
	"""Renumber one syntax unit and normalize its exported symbol table."""
	counter = renumber_tree(unit, counter)
	normalize_exported_symbols(unit)
	return counter


def _with_index(raw: Any, file_index: int) -> str:
	return str(SrcLocation.parse(raw).with_file_index(file_index))


def rewrite_src(tree: Any, file_index: int) -> None:
	"""
	Set the file index of every source location in `tree`.

	Raises ValueError on a malformed descriptor.
	"""
	for obj in walk(tree):
		for name in _SRC_FIELDS:
			if name in obj and isinstance(obj[name], str):
				obj[name] = _with_index(obj[name], file_index)
		for name in _SRC_LIST_FIELDS:
			if isinstance(obj.get(name), list):
				obj[name] = [_with_index(v, file_index) for v in obj[name]]


__all__ = ["renumber_tree", "renumber_unit", "normalize_exported_symbols", "rewrite_src"]
