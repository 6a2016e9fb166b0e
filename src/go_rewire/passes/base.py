"""
Instrumentation Pass Interface.

A pass is a factory of per-file ``ScopeVisitor`` objects. The visitor records
patches into the ``PatchSet`` it is given; it never edits text itself.
Pass-usage problems are collected in ``diagnostics`` rather than raised, so
one malformed construct only skips its own subtree.

``combine_passes`` turns an ordered list of passes into the single function
the closure instrumenter calls for every file.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Type

from pydantic import BaseModel

from go_rewire.core.multi_visitor import MultiVisitor
from go_rewire.core.patch import PatchableFile, PatchSet
from go_rewire.core.walker import ScopeVisitor, walk_file
from go_rewire.errors import PassUsageError
from go_rewire.utils.console import log_warning

PassFunction = Callable[[PatchableFile], PatchSet]


class InstrumentationPass(ABC):
  """
  Base class for registered passes.

  Attributes:
      name: Registry name, set by ``register_pass``.
      settings_model: Optional pydantic model validating this pass's settings.
      diagnostics: Usage errors reported during the run.
  """

  name: str = ""
  settings_model: Optional[Type[BaseModel]] = None

  def __init__(self, settings: Optional[BaseModel] = None):
    if settings is None and self.settings_model is not None:
      settings = self.settings_model()
    self.settings = settings
    self.diagnostics: List[PassUsageError] = []

  @abstractmethod
  def visitor(self, file: PatchableFile, patches: PatchSet) -> ScopeVisitor:
    """
    Creates the visitor for one file.

    Args:
        file: The file being instrumented.
        patches: Destination of this pass's patches for the file.

    Returns:
        ScopeVisitor: The root visitor for ``walk_file``.
    """

  def report(self, file: PatchableFile, offset: int, message: str) -> PassUsageError:
    """Logs a usage error as ``file:line:col: message`` and records it."""
    line, col = file.position(offset)
    error = PassUsageError(str(file.path), line, col, message)
    log_warning(str(error))
    self.diagnostics.append(error)
    return error


def combine_passes(passes: Sequence[InstrumentationPass]) -> PassFunction:
  """
  Builds the per-file function running every pass in one walk.

  Each pass writes into its own ``PatchSet``. The sets are merged in pass
  order, so on overlap the earlier pass wins.

  Args:
      passes: Passes in precedence order.

  Returns:
      PassFunction: ``PatchableFile -> PatchSet``.
  """

  def run(file: PatchableFile) -> PatchSet:
    sets = [PatchSet() for _ in passes]
    visitors = [p.visitor(file, s) for p, s in zip(passes, sets)]
    if len(visitors) == 1:
      walk_file(visitors[0], file.tree)
    elif visitors:
      walk_file(MultiVisitor(*visitors), file.tree)
    merged = PatchSet()
    for patches in sets:
      merged.extend(patches.registered())
    return merged

  return run
