"""
CLI Command Handlers Facade.

Re-exports the handlers from ``go_rewire.cli.handlers`` so the entry point
and tests address a single module.
"""

from go_rewire.cli.handlers.instrument import handle_instrument
from go_rewire.cli.handlers.toolchain import handle_toolchain
from go_rewire.cli.handlers.unused import handle_unused

__all__ = [
  "handle_instrument",
  "handle_toolchain",
  "handle_unused",
]
