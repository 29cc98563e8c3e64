# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from astmerge.config import ORDERING_STRATEGIES, UNRESOLVED_POLICIES, MergeConfig, load_config
from astmerge.errors import MergeError
from astmerge.merge.builder import make_build
from astmerge.merge.snapshot import readable_json_bytes

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
	p = argparse.ArgumentParser(prog="astmerge", description="Merge per-file compiler syntax trees into one consistent collection")
	p.add_argument("-v", "--verbose", action="store_true", help="Log per-reference resolution details")
	p.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
	sub = p.add_subparsers(dest="cmd", required=True)

	merge = sub.add_parser("merge", help="Merge the syntax tree artifacts of a project")
	merge.add_argument("--config", type=Path, default=None, help="Path to a JSON config file (e.g. astmerge.json)")
	merge.add_argument("--root", type=Path, default=None, help="Project root (default: config root or .)")
	merge.add_argument("--ast-dir", type=str, default=None, help="Artifact directory relative to the root (default: ast)")
	merge.add_argument(
		"--library-dir",
		dest="library_dirs",
		action="append",
		default=None,
		help="Directory (relative to the root) holding imported dependency sources (repeatable; default: node_modules)",
	)
	merge.add_argument("--ordering", choices=ORDERING_STRATEGIES, default=None, help="File ordering strategy (default: topological)")
	merge.add_argument(
		"--unresolved",
		choices=UNRESOLVED_POLICIES,
		default=None,
		help="What to do with references that cannot be repaired (default: warn)",
	)
	merge.add_argument("--no-snapshot", action="store_true", help="Do not write build/astBuild.json")
	merge.add_argument("--expect", action="append", default=None, help="Root-relative source path that must have an artifact (repeatable)")
	merge.add_argument("--out", type=Path, default=None, help="Write the merged build (input + output sources) to this path")
	merge.add_argument("--json", action="store_true", help="Emit a machine-readable JSON report")
	return p


def _configure_logging(verbose: bool, quiet: bool) -> None:
	level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _config_from_args(args: argparse.Namespace) -> MergeConfig:
	base = load_config(args.config) if args.config is not None else MergeConfig()
	return base.with_overrides(
		root=args.root,
		ast_dir=args.ast_dir,
		library_dirs=tuple(args.library_dirs) if args.library_dirs else None,
		ordering=args.ordering,
		unresolved=args.unresolved,
		write_snapshot=False if args.no_snapshot else None,
	)


def _run_merge(args: argparse.Namespace, p: argparse.ArgumentParser) -> int:
	try:
		config = _config_from_args(args)
	except (OSError, ValueError) as err:
		p.error(str(err))
		return 2

	try:
		build = make_build(config, expected=args.expect)
	except MergeError as err:
		if args.json:
			print(json.dumps({"exit_code": 1, "error": err.to_dict(), "diagnostics": []}))
		else:
			print(f"astmerge: error: {err.format_human()}", file=sys.stderr)
		return 1

	if args.out is not None:
		args.out.parent.mkdir(parents=True, exist_ok=True)
		args.out.write_bytes(readable_json_bytes(build.to_dict()))
		logger.info("wrote merged build to %s", args.out)

	if args.json:
		print(
			json.dumps(
				{
					"exit_code": 0,
					"order": list(build.order),
					"snapshot_sha256": build.snapshot_sha256,
					"diagnostics": [d.to_dict() for d in build.diagnostics],
				}
			)
		)
	else:
		for diag in build.diagnostics:
			print(diag.format_human(), file=sys.stderr)
	return 0


def main(argv: list[str] | None = None) -> int:
	p = _build_parser()
	args = p.parse_args(argv)
	_configure_logging(bool(args.verbose), bool(args.quiet))

	if args.cmd == "merge":
		return _run_merge(args, p)
	p.error(f"unknown command {args.cmd}")
	return 2


if __name__ == "__main__":  # pragma: no cover
	sys.exit(main())
