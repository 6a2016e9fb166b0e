"""
Package closure instrumentation and toolchain integration.
"""

from go_rewire.instrument.closure import Instrumentable, has_path_prefix
from go_rewire.instrument.command import GoCmd
from go_rewire.instrument.packages import GoPackage, PackageLoader, guess_base_path, is_local_import

__all__ = [
  "GoCmd",
  "GoPackage",
  "Instrumentable",
  "PackageLoader",
  "guess_base_path",
  "has_path_prefix",
  "is_local_import",
]
