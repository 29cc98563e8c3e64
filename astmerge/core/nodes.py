# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Generic helpers over compact-JSON syntax trees.

Trees are plain `dict`/`list` structures straight out of `json.loads`; a node
is any mapping that carries a `nodeType` (or at least an `id`). The helpers
here never copy: they yield the live mappings so callers can mutate in place.
"""

from __future__ import annotations

from typing import Any, Iterator

CONTRACT_DEFINITION = "ContractDefinition"
FUNCTION_DEFINITION = "FunctionDefinition"
MODIFIER_DEFINITION = "ModifierDefinition"
VARIABLE_DECLARATION = "VariableDeclaration"
IMPORT_DIRECTIVE = "ImportDirective"
INHERITANCE_SPECIFIER = "InheritanceSpecifier"

# Fields holding the override links of function-like declarations.
OVERRIDE_FIELDS = {
	FUNCTION_DEFINITION: "baseFunctions",
	VARIABLE_DECLARATION: "baseFunctions",
	MODIFIER_DEFINITION: "baseModifiers",
}


def is_node(obj: Any) -> bool:
	return isinstance(obj, dict) and ("nodeType" in obj or "id" in obj)


def is_node_type(node_type: str, obj: Any) -> bool:
	return isinstance(obj, dict) and obj.get("nodeType") == node_type


def walk(tree: Any) -> Iterator[dict]:
	"""Yield every mapping in `tree` (pre-order, field order)."""
	stack = [tree]
	while stack:
		cur = stack.pop()
		if isinstance(cur, dict):
			yield cur
			stack.extend(reversed(list(cur.values())))
		elif isinstance(cur, list):
			stack.extend(reversed(cur))


def find_all(node_type: str, tree: Any) -> Iterator[dict]:
	for obj in walk(tree):
		if obj.get("nodeType") == node_type:
			yield obj


def find_by_id(tree: Any, node_id: int) -> dict | None:
	for obj in walk(tree):
		if is_node(obj) and obj.get("id") == node_id:
			return obj
	return None


def root_contract(unit: dict) -> dict | None:
	"""First contract-like declaration at the top level of a unit."""
	for node in unit.get("nodes", []):
		if is_node_type(CONTRACT_DEFINITION, node):
			return node
	return None


def iter_with_container(tree: Any) -> Iterator[tuple[dict, dict | None]]:
	"""
	Yield `(mapping, enclosing_contract)` pairs.

	`enclosing_contract` is the nearest ContractDefinition strictly above the
	mapping, or None for file-level nodes.
	"""
	stack: list[tuple[Any, dict | None]] = [(tree, None)]
	while stack:
		cur, container = stack.pop()
		if isinstance(cur, dict):
			yield cur, container
			inner = cur if cur.get("nodeType") == CONTRACT_DEFINITION else container
			stack.extend((v, inner) for v in reversed(list(cur.values())))
		elif isinstance(cur, list):
			stack.extend((v, container) for v in reversed(cur))


def parameter_signature(node: dict) -> tuple[str, ...] | None:
	"""
	Parameter type strings of a function-like declaration.

	Used as a structural fingerprint next to the declaration name; None when the
	node has no parameter list (e.g. state variables).
	"""
	params = node.get("parameters")
	if not isinstance(params, dict):
		return None
	out: list[str] = []
	for p in params.get("parameters", []):
		if not isinstance(p, dict):
			continue
		td = p.get("typeDescriptions")
		type_string = td.get("typeString") if isinstance(td, dict) else None
		out.append(str(type_string) if type_string is not None else "?")
	return tuple(out)


__all__ = [
	"CONTRACT_DEFINITION",
	"FUNCTION_DEFINITION",
	"MODIFIER_DEFINITION",
	"VARIABLE_DECLARATION",
	"IMPORT_DIRECTIVE",
	"INHERITANCE_SPECIFIER",
	"OVERRIDE_FIELDS",
	"is_node",
	"is_node_type",
	"walk",
	"find_all",
	"find_by_id",
	"root_contract",
	"iter_with_container",
	"parameter_signature",
]
