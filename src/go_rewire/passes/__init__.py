"""
Instrumentation passes.

Importing this package registers the built-in passes (``must``, ``unused``).
"""

from go_rewire.passes.base import InstrumentationPass, PassFunction, combine_passes
from go_rewire.passes.registry import available_passes, get_pass, register_pass, require_pass
from go_rewire.passes.must import MustPass, MustSettings
from go_rewire.passes.unused import CollectingReporter, UnusedPass, UnusedReporter, UnusedSettings

__all__ = [
  "CollectingReporter",
  "InstrumentationPass",
  "MustPass",
  "MustSettings",
  "PassFunction",
  "UnusedPass",
  "UnusedReporter",
  "UnusedSettings",
  "available_passes",
  "combine_passes",
  "get_pass",
  "register_pass",
  "require_pass",
]
