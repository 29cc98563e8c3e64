# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Compiler `typeIdentifier` encoding.

Type identifiers are the machine-readable twin of `typeString`. User-defined
types embed the declaration id right after a parenthesized name:

  t_contract$_Base_$12
  t_struct$_Pos_$31_storage_ptr
  t_type$_t_contract$_Base_$12_$
  t_mapping$_t_address_$_t_mapping$_t_address_$_t_uint256_$_$

`$_` opens an argument list, `_$_` separates arguments and `_$` closes the
list; whatever follows the close (an id, `dyn`, a data-location suffix) stays
attached to that group. When ids are renumbered only the digits right after
the referenced name change, so we parse the encoding, swap the id in place and
print it back unchanged otherwise.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

_GRAMMAR_SRC = r"""
start: type

type: WORD group*
group: OPEN args? CLOSE WORD?
args: type (SEP type)*

// `_$_$` is a close followed by a close, never a separator.
SEP.3: /_\$_(?!\$)/
OPEN.2: "$_"
CLOSE.2: "_$"
WORD: /[A-Za-z0-9_.]*[A-Za-z0-9.]/
"""

_PARSER = Lark(_GRAMMAR_SRC, parser="lalr", start="start")

# Kinds whose single argument is a declaration name followed by its id.
USER_DEFINED_KINDS = frozenset({"t_contract", "t_struct", "t_enum", "t_userDefinedValueType", "t_super"})

_LEADING_ID = re.compile(r"^\d+")


@dataclass
class TypeGroup:
	args: list["TypeIdent"] = field(default_factory=list)
	suffix: str = ""

	def __str__(self) -> str:
		return "$_" + "_$_".join(str(a) for a in self.args) + "_$" + self.suffix


@dataclass
class TypeIdent:
	head: str
	groups: list[TypeGroup] = field(default_factory=list)

	def __str__(self) -> str:
		return self.head + "".join(str(g) for g in self.groups)

	def walk(self):
		yield self
		for g in self.groups:
			for a in g.args:
				yield from a.walk()


class _BuildTypeIdent(Transformer):
	def start(self, children):
		return children[0]

	def type(self, children):
		head = str(children[0])
		return TypeIdent(head=head, groups=[c for c in children[1:] if isinstance(c, TypeGroup)])

	def group(self, children):
		grp = TypeGroup()
		for c in children:
			if isinstance(c, list):
				grp.args = c
			elif isinstance(c, Token) and c.type == "WORD":
				grp.suffix = str(c)
		return grp

	def args(self, children):
		return [c for c in children if isinstance(c, TypeIdent)]


def parse_type_identifier(raw: str) -> TypeIdent:
	"""Parse a `typeIdentifier`; ValueError when it is not well formed."""
	try:
		tree = _PARSER.parse(raw)
	except LarkError as err:
		raise ValueError(f"invalid typeIdentifier '{raw}'") from err
	return _BuildTypeIdent().transform(tree)


def _names_match(encoded: str, name: str) -> bool:
	return encoded == name or encoded.rsplit(".", 1)[-1] == name.rsplit(".", 1)[-1]


def _is_user_ref(ident: TypeIdent) -> bool:
	if ident.head not in USER_DEFINED_KINDS or not ident.groups:
		return False
	grp = ident.groups[0]
	return len(grp.args) == 1 and not grp.args[0].groups and _LEADING_ID.match(grp.suffix) is not None


def splice_declaration_id(raw: str, name: str, new_id: int) -> str:
	"""
	Return `raw` with the id attached to the user-defined reference `name`
	replaced by `new_id`.

	Every reference to `name` is rewritten. If the name does not occur (the
	encoded name may be qualified differently) and there is exactly one
	user-defined reference, that one is rewritten instead. Anything else is
	returned unchanged.
	"""
	ident = parse_type_identifier(raw)
	refs = [t for t in ident.walk() if _is_user_ref(t)]
	targets = [t for t in refs if _names_match(t.groups[0].args[0].head, name)]
	if not targets and len(refs) == 1:
		targets = refs
	for t in targets:
		grp = t.groups[0]
		grp.suffix = _LEADING_ID.sub(str(new_id), grp.suffix, count=1)
	return str(ident)


__all__ = [
	"TypeGroup",
	"TypeIdent",
	"USER_DEFINED_KINDS",
	"parse_type_identifier",
	"splice_declaration_id",
]
