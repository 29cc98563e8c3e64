# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import pytest

from astmerge.core.type_identifier import parse_type_identifier, splice_declaration_id


@pytest.mark.parametrize(
	"raw",
	[
		"t_uint256",
		"t_contract$_Base_$12",
		"t_struct$_Pos_$31_storage_ptr",
		"t_type$_t_contract$_Base_$12_$",
		"t_array$_t_uint256_$dyn_storage_ptr",
		"t_mapping$_t_address_$_t_uint256_$",
		"t_mapping$_t_address_$_t_mapping$_t_address_$_t_uint256_$_$",
		"t_function_internal_nonpayable$_t_uint256_$returns$__$",
		"t_contract$__Hidden_$4",
	],
)
def test_parse_prints_back_unchanged(raw: str) -> None:
	assert str(parse_type_identifier(raw)) == raw


def test_splice_contract_reference() -> None:
	assert splice_declaration_id("t_contract$_Base_$12", "Base", 120) == "t_contract$_Base_$120"


def test_splice_keeps_location_suffix() -> None:
	assert splice_declaration_id("t_struct$_Pos_$31_storage_ptr", "Pos", 7) == "t_struct$_Pos_$7_storage_ptr"


def test_splice_nested_reference() -> None:
	raw = "t_type$_t_contract$_Base_$12_$"
	assert splice_declaration_id(raw, "Base", 99) == "t_type$_t_contract$_Base_$99_$"


def test_splice_only_touches_named_reference() -> None:
	raw = "t_mapping$_t_contract$_Key_$3_$_t_contract$_Base_$12_$"
	out = splice_declaration_id(raw, "Base", 40)
	assert out == "t_mapping$_t_contract$_Key_$3_$_t_contract$_Base_$40_$"


def test_splice_falls_back_to_single_reference_for_qualified_names() -> None:
	assert splice_declaration_id("t_contract$_Base_$12", "Lib.Other", 5) == "t_contract$_Base_$5"
	assert splice_declaration_id("t_contract$_Base_$12", "lib.Base", 5) == "t_contract$_Base_$5"


def test_splice_without_reference_is_unchanged() -> None:
	assert splice_declaration_id("t_uint256", "Base", 5) == "t_uint256"


def test_malformed_identifier_raises_value_error() -> None:
	with pytest.raises(ValueError, match="invalid typeIdentifier"):
		parse_type_identifier("t_contract$_Base")
