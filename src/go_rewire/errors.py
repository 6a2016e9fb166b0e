"""
Exception Taxonomy.

Every error the toolkit raises on purpose derives from ``RewireError`` so the
CLI can report it uniformly. The hierarchy mirrors the failure classes of an
instrumentation run:

1.  **Configuration / resolution** (``ConfigurationError``,
    ``ImportResolutionError``, ``GoSyntaxError``): the run is aborted and the
    offending identifier is reported.
2.  **Pass usage** (``PassUsageError``): a pass-specific contract violation at
    a source position. Passes record it as a diagnostic and prune the
    offending subtree; it is never raised out of a walk.
3.  **Internal invariants** (``WalkerInvariantError``,
    ``TempNameExhaustedError``): the walker and the tree disagree, or a pass
    ran away. Fatal.

Resource failures (temp dirs, file I/O) are left as the builtin ``OSError``.
"""

from typing import Optional


class RewireError(Exception):
  """Base class for all go-rewire errors."""


class ConfigurationError(RewireError):
  """Invalid options, unknown passes, or a toolchain invocation that cannot be retargeted."""


class ImportResolutionError(RewireError):
  """An import path could not be resolved to a package directory."""

  def __init__(self, import_path: str, importer: Optional[str] = None, reason: str = "cannot find package"):
    """
    Args:
        import_path: The import path as written in the source.
        importer: Directory or import path of the package that imported it.
        reason: Short description of the failure.
    """
    self.import_path = import_path
    self.importer = importer
    self.reason = reason
    where = f" (imported by {importer})" if importer else ""
    super().__init__(f'{reason} "{import_path}"{where}')


class GoSyntaxError(RewireError):
  """A Go source file could not be parsed."""

  def __init__(self, filename: str, line: int, column: int, message: str):
    self.filename = filename
    self.line = line
    self.column = column
    self.message = message
    super().__init__(f"{filename}:{line}:{column}: {message}")


class PassUsageError(RewireError):
  """A source construct violates the contract of an instrumentation pass."""

  def __init__(self, filename: str, line: int, column: int, message: str):
    self.filename = filename
    self.line = line
    self.column = column
    self.message = message
    super().__init__(f"{filename}:{line}:{column}: {message}")


class WalkerInvariantError(RewireError):
  """The scope walker met a node or scope chain it cannot handle. Fatal."""


class TempNameExhaustedError(RewireError):
  """No collision-free temporary name was found within the search bound. Fatal."""
