# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Debug snapshot of the merged tree collection.

The snapshot is for humans: indented JSON, paths in processing order. Nothing
reads it back, so a failed write is logged and otherwise ignored.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def sha256_hex(data: bytes) -> str:
	"""Return sha256 hex digest for `data`."""
	return hashlib.sha256(data).hexdigest()


def readable_json_bytes(obj: Any) -> bytes:
	"""
	Render JSON for inspection.

	Rules:
	- UTF-8
	- two-space indentation
	- key order preserved (the compiler's field order reads best)
	"""
	return (json.dumps(obj, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def write_snapshot(path: Path, sources: Mapping[str, Any]) -> str | None:
	"""
	Write `sources` to `path` atomically.

	Returns the sha256 of the written bytes, or None when the write failed.
	"""
	try:
		data = readable_json_bytes(dict(sources))
		path.parent.mkdir(parents=True, exist_ok=True)
		tmp = path.with_name(path.name + f".tmp.{os.getpid()}")
		tmp.write_bytes(data)
		os.replace(tmp, path)
	except (OSError, TypeError, ValueError) as err:
		logger.warning("could not write merged syntax tree snapshot to %s: %s", path, err)
		return None
	digest = sha256_hex(data)
	logger.info("wrote merged syntax tree snapshot %s (sha256 %s)", path, digest[:12])
	return digest


__all__ = ["sha256_hex", "readable_json_bytes", "write_snapshot"]
