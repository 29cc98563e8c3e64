# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from astmerge.config import MergeConfig
from astmerge.errors import MISSING_ARTIFACT, MergeError
from astmerge.merge.builder import make_build
from astmerge.merge.snapshot import sha256_hex
from astmerge.tests.support.ast_fixtures import (
	BASE_PATH,
	DERIVED_PATH,
	base_and_derived_runs,
	write_artifacts,
	write_sources,
)


def _project(root: Path, *, sources: bool = True) -> None:
	write_artifacts(root / "ast", base_and_derived_runs())
	if sources:
		write_sources(root, [BASE_PATH, DERIVED_PATH])


def test_build_pairs_sources_with_merged_trees(tmp_path: Path) -> None:
	_project(tmp_path)
	build = make_build(MergeConfig(root=tmp_path))
	out = build.to_dict()
	assert list(out["input"]["sources"]) == [BASE_PATH, DERIVED_PATH]
	assert out["input"]["sources"][DERIVED_PATH] == {"content": f"// {DERIVED_PATH}\n"}
	assert [out["output"]["sources"][p]["id"] for p in build.order] == [0, 1]
	assert out["output"]["sources"][BASE_PATH]["ast"]["nodeType"] == "SourceUnit"
	assert build.diagnostics == []


def test_snapshot_is_written_in_processing_order(tmp_path: Path) -> None:
	_project(tmp_path)
	build = make_build(MergeConfig(root=tmp_path))
	snap = tmp_path / "build" / "astBuild.json"
	data = snap.read_bytes()
	assert build.snapshot_sha256 == sha256_hex(data)
	loaded = json.loads(data)
	assert list(loaded) == [BASE_PATH, DERIVED_PATH]
	assert loaded == build.output


def test_snapshot_can_be_disabled(tmp_path: Path) -> None:
	_project(tmp_path)
	build = make_build(MergeConfig(root=tmp_path, write_snapshot=False))
	assert build.snapshot_sha256 is None
	assert not (tmp_path / "build").exists()


def test_snapshot_failure_does_not_abort(tmp_path: Path) -> None:
	_project(tmp_path)
	(tmp_path / "build").write_text("not a directory", encoding="utf-8")
	build = make_build(MergeConfig(root=tmp_path))
	assert build.snapshot_sha256 is None
	assert build.order == [BASE_PATH, DERIVED_PATH]


def test_missing_source_aborts_before_snapshot(tmp_path: Path) -> None:
	_project(tmp_path, sources=False)
	with pytest.raises(MergeError) as excinfo:
		make_build(MergeConfig(root=tmp_path))
	assert excinfo.value.reason_code == MISSING_ARTIFACT
	assert not (tmp_path / "build" / "astBuild.json").exists()
