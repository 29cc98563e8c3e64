# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from astmerge.config import MergeConfig
from astmerge.errors import MALFORMED_ARTIFACT, MISSING_ARTIFACT, MergeError
from astmerge.merge.loader import file_stem, load_compilations, read_source_content, strip_root
from astmerge.tests.support.ast_fixtures import (
	BASE_PATH,
	DERIVED_PATH,
	CompilerRun,
	base_and_derived_runs,
	build_base,
	write_artifacts,
)


def test_file_stem_and_strip_root() -> None:
	assert file_stem("contracts/token/Token.sol") == "Token"
	assert file_stem("C:\\src\\Vault.tsol") == "Vault"
	assert strip_root("/work/proj/contracts/A.sol", "/work/proj") == "contracts/A.sol"
	assert strip_root("@oz/access/Ownable.sol", "/work/proj") == "@oz/access/Ownable.sol"
	assert strip_root("contracts/A.sol", ".") == "contracts/A.sol"


def test_loads_one_compilation_per_main_file(tmp_path: Path) -> None:
	write_artifacts(tmp_path / "ast", base_and_derived_runs())
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert list(comps) == [BASE_PATH, DERIVED_PATH]
	assert len(comps[DERIVED_PATH].units) == 2
	assert comps[DERIVED_PATH].main["absolutePath"] == DERIVED_PATH
	assert comps[DERIVED_PATH].unit_for_path(BASE_PATH) is not None
	assert comps[BASE_PATH].artifact_path == tmp_path / "ast" / "A.ast.json"


def test_single_tree_artifact_is_wrapped(tmp_path: Path) -> None:
	write_artifacts(tmp_path / "ast", {"A.ast.json": build_base(CompilerRun())})
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert len(comps[BASE_PATH].units) == 1


def test_absolute_paths_become_root_relative(tmp_path: Path) -> None:
	runs = base_and_derived_runs()
	for units in runs.values():
		for u in units:
			u["absolutePath"] = f"{tmp_path}/{u['absolutePath']}"
	imp = runs["B.ast.json"][1]["nodes"][1]
	imp["absolutePath"] = f"{tmp_path}/{imp['absolutePath']}"
	write_artifacts(tmp_path / "ast", runs)

	comps = load_compilations(MergeConfig(root=tmp_path))
	assert set(comps) == {BASE_PATH, DERIVED_PATH}
	assert comps[DERIVED_PATH].main["nodes"][1]["absolutePath"] == BASE_PATH


def test_raw_compiler_artifact_names(tmp_path: Path) -> None:
	runs = base_and_derived_runs()
	write_artifacts(tmp_path / "ast", {"A.sol_json.ast": runs["A.ast.json"], "B.tsol_json.ast": runs["B.ast.json"], "notes.txt": []})
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert set(comps) == {BASE_PATH, DERIVED_PATH}


def test_artifact_without_main_tree_is_skipped(tmp_path: Path) -> None:
	write_artifacts(tmp_path / "ast", {"Other.ast.json": [build_base(CompilerRun())]})
	assert load_compilations(MergeConfig(root=tmp_path)) == {}


def test_first_duplicate_wins(tmp_path: Path) -> None:
	write_artifacts(
		tmp_path / "ast",
		{"A.ast.json": [build_base(CompilerRun(1))], "A.sol_json.ast": [build_base(CompilerRun(500))]},
	)
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert comps[BASE_PATH].artifact_path.name == "A.ast.json"


def test_missing_ast_dir(tmp_path: Path) -> None:
	with pytest.raises(MergeError) as excinfo:
		load_compilations(MergeConfig(root=tmp_path))
	assert excinfo.value.reason_code == MISSING_ARTIFACT


def test_invalid_json_is_malformed(tmp_path: Path) -> None:
	(tmp_path / "ast").mkdir()
	(tmp_path / "ast" / "A.ast.json").write_text("{not json", encoding="utf-8")
	with pytest.raises(MergeError) as excinfo:
		load_compilations(MergeConfig(root=tmp_path))
	assert excinfo.value.reason_code == MALFORMED_ARTIFACT
	assert excinfo.value.artifact_path is not None and excinfo.value.artifact_path.endswith("A.ast.json")


@pytest.mark.parametrize(
	"payload",
	[
		[{"absolutePath": "contracts/A.sol"}],
		[{"nodes": []}],
		["contracts/A.sol"],
		[{"absolutePath": "contracts/A.sol", "nodes": [], "exportedSymbols": []}],
	],
)
def test_structurally_invalid_trees_are_malformed(tmp_path: Path, payload: object) -> None:
	(tmp_path / "ast").mkdir()
	(tmp_path / "ast" / "A.ast.json").write_text(json.dumps(payload), encoding="utf-8")
	with pytest.raises(MergeError) as excinfo:
		load_compilations(MergeConfig(root=tmp_path))
	assert excinfo.value.reason_code == MALFORMED_ARTIFACT


def test_missing_expected_artifact(tmp_path: Path) -> None:
	runs = base_and_derived_runs()
	write_artifacts(tmp_path / "ast", {"A.ast.json": runs["A.ast.json"]})
	with pytest.raises(MergeError) as excinfo:
		load_compilations(MergeConfig(root=tmp_path), expected=[BASE_PATH, DERIVED_PATH])
	assert excinfo.value.reason_code == MISSING_ARTIFACT
	assert excinfo.value.related_paths == [DERIVED_PATH]


def test_source_content_falls_back_to_library_dirs(tmp_path: Path) -> None:
	(tmp_path / "contracts").mkdir()
	(tmp_path / "contracts" / "A.sol").write_text("contract A {}\n", encoding="utf-8")
	lib = tmp_path / "node_modules" / "@oz" / "access"
	lib.mkdir(parents=True)
	(lib / "Ownable.sol").write_text("contract Ownable {}\n", encoding="utf-8")
	config = MergeConfig(root=tmp_path)
	assert read_source_content(config, BASE_PATH) == "contract A {}\n"
	assert read_source_content(config, "@oz/access/Ownable.sol") == "contract Ownable {}\n"


def test_missing_source_content(tmp_path: Path) -> None:
	with pytest.raises(MergeError) as excinfo:
		read_source_content(MergeConfig(root=tmp_path), BASE_PATH)
	assert excinfo.value.reason_code == MISSING_ARTIFACT
	assert excinfo.value.path == BASE_PATH


def _same_named(lib_path: str) -> list[dict]:
	run = CompilerRun(start=1)
	lib = build_base(run, path=lib_path)
	own = build_base(run, path="contracts/ERC20.sol", file_index=1)
	return [lib, own]


def test_project_file_wins_over_same_named_library_file(tmp_path: Path) -> None:
	lib_path = "node_modules/@oz/token/ERC20.sol"
	write_artifacts(tmp_path / "ast", {"ERC20.ast.json": _same_named(lib_path)})
	(tmp_path / "node_modules" / "@oz" / "token").mkdir(parents=True)
	(tmp_path / lib_path).write_text("// library\n", encoding="utf-8")
	(tmp_path / "contracts").mkdir()
	(tmp_path / "contracts" / "ERC20.sol").write_text("// project\n", encoding="utf-8")
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert list(comps) == ["contracts/ERC20.sol"]


def test_project_file_wins_even_when_listed_first(tmp_path: Path) -> None:
	units = list(reversed(_same_named("@oz/token/ERC20.sol")))
	write_artifacts(tmp_path / "ast", {"ERC20.ast.json": units})
	(tmp_path / "contracts").mkdir()
	(tmp_path / "contracts" / "ERC20.sol").write_text("// project\n", encoding="utf-8")
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert list(comps) == ["contracts/ERC20.sol"]


def test_last_stem_match_wins_without_sources(tmp_path: Path) -> None:
	write_artifacts(tmp_path / "ast", {"ERC20.ast.json": _same_named("@oz/token/ERC20.sol")})
	comps = load_compilations(MergeConfig(root=tmp_path))
	assert list(comps) == ["contracts/ERC20.sol"]
