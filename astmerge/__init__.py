# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
astmerge: merge independently compiled per-file syntax trees.

Each source file of a contract project is compiled on its own, so every
artifact carries a private node numbering and its own `src` file indices.
This package stitches those artifacts into one consistent tree collection:

  merge.loader:    artifact loading + root-relative path normalization
  merge.ordering:  bases-before-derived file ordering
  merge.renumber:  global id assignment and `src` rewriting
  merge.resolver:  cross-file reference repair
  merge.builder:   orchestration and the final `MergeBuild`

The CLI entrypoint is `astmerge.cli:main`.
"""

__all__ = ["core", "merge"]
