"""
Dead-Binding Detector (``unused``).

Reports every binding that no identifier resolves to by the time its scope
closes, and patches the file so the Go compiler accepts it anyway:

- an unused local variable gets a ``_ = x`` statement right after its
  declaring statement (or at the start of the loop/if body, or after each
  case colon when declared by a switch header or a select case);
- an unused import becomes a blank import.

Exempt: ``_``, ``init`` and ``main`` functions, methods, named results, dot
and blank imports. Reports arrive innermost scope first and in declaration
order within a scope, bindings before imports.
"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from go_rewire.core.patch import Insert, PatchableFile, PatchSet, Replace
from go_rewire.core.scope import Binding, BindingKind, Scope
from go_rewire.core.walker import ScopeVisitor
from go_rewire.passes.base import InstrumentationPass
from go_rewire.passes.registry import register_pass
from go_rewire.syntax import nodes as ast
from go_rewire.utils.console import log_warning


class UnusedSettings(BaseModel):
  fix: bool = Field(True, description="Emit patches that silence unused variables and imports.")
  report: bool = Field(True, description="Log every unused binding as a warning.")


class UnusedReporter:
  """Receives unused bindings. The default implementation logs compiler-style warnings."""

  def unused_binding(self, file: PatchableFile, binding: Binding) -> None:
    log_warning(f"{file.location(binding.ident.start)}: {binding.name} declared and not used")

  def unused_import(self, file: PatchableFile, spec: ast.ImportSpec) -> None:
    log_warning(f"{file.location(spec.start)}: {spec.path.value} imported and not used")


class CollectingReporter(UnusedReporter):
  """Records names (imports as their quoted path) instead of logging them."""

  def __init__(self) -> None:
    self.names: List[str] = []
    self.locations: List[str] = []

  def unused_binding(self, file: PatchableFile, binding: Binding) -> None:
    self.names.append(binding.name)
    self.locations.append(file.location(binding.ident.start))

  def unused_import(self, file: PatchableFile, spec: ast.ImportSpec) -> None:
    self.names.append(spec.path.value)
    self.locations.append(file.location(spec.start))


class _NullReporter(UnusedReporter):
  def unused_binding(self, file: PatchableFile, binding: Binding) -> None:
    pass

  def unused_import(self, file: PatchableFile, spec: ast.ImportSpec) -> None:
    pass


# Where the silencing statement goes: list of (offset, template) per declaring node.
Placement = List[Tuple[int, str]]

_AFTER = "; _ = {name}"
_BEFORE = "_ = {name}; "
_AFTER_COLON = " _ = {name};"


def is_exempt(binding: Binding) -> bool:
  if binding.name == "_" or binding.result:
    return True
  if binding.kind is BindingKind.FUNC and binding.name in ("main", "init"):
    return True
  if binding.kind is BindingKind.IMPORT:
    spec = binding.ident
    return isinstance(spec, ast.ImportSpec) and spec.name is not None and spec.name.name in (".", "_")
  return False


@register_pass("unused")
class UnusedPass(InstrumentationPass):
  """The ``unused`` pass. Pass a reporter to receive the findings directly."""

  settings_model = UnusedSettings

  def __init__(self, settings: Optional[UnusedSettings] = None, reporter: Optional[UnusedReporter] = None):
    super().__init__(settings)
    if reporter is None:
      reporter = UnusedReporter() if self.settings.report else _NullReporter()
    self.reporter = reporter

  def visitor(self, file: PatchableFile, patches: PatchSet) -> ScopeVisitor:
    return UnusedVisitor(self, file, patches)


class UnusedVisitor(ScopeVisitor):
  """
  Stateless across subtrees; the placement table is keyed by node and only grows.
  """

  def __init__(self, owner: UnusedPass, file: PatchableFile, patches: PatchSet):
    self.owner = owner
    self.file = file
    self.patches = patches
    self.placements: Dict[ast.Node, Placement] = {}

  def _place_list(self, stmts: List[ast.Stmt]) -> None:
    for stmt in stmts:
      end = stmt.end
      while isinstance(stmt, ast.LabeledStmt):
        stmt = stmt.stmt
      if isinstance(stmt, ast.AssignStmt) and stmt.is_define:
        self.placements[stmt] = [(end, _AFTER)]
      elif isinstance(stmt, ast.DeclStmt):
        for spec in stmt.decl.specs:
          self.placements[spec] = [(end, _AFTER)]

  def _place_clauses(self, owner: ast.Node, body: ast.BlockStmt) -> None:
    self.placements[owner] = [(clause.colon, _AFTER_COLON) for clause in body.list]

  def visit_stmt(self, scope: Scope, stmt: ast.Stmt) -> Optional[ScopeVisitor]:
    if isinstance(stmt, ast.BlockStmt):
      self._place_list(stmt.list)
    elif isinstance(stmt, (ast.CaseClause, ast.CommClause)):
      self._place_list(stmt.body)
      if isinstance(stmt, ast.CommClause) and stmt.comm is not None:
        self.placements[stmt.comm] = [(stmt.colon, _AFTER_COLON)]
    elif isinstance(stmt, (ast.IfStmt, ast.ForStmt)) and stmt.init is not None:
      self.placements[stmt.init] = [(stmt.body.lbrace + 1, _BEFORE)]
    elif isinstance(stmt, ast.RangeStmt):
      self.placements[stmt] = [(stmt.body.lbrace + 1, _BEFORE)]
    elif isinstance(stmt, ast.SwitchStmt) and stmt.init is not None:
      self._place_clauses(stmt.init, stmt.body)
    elif isinstance(stmt, ast.TypeSwitchStmt):
      if stmt.init is not None:
        self._place_clauses(stmt.init, stmt.body)
      self._place_clauses(stmt.assign, stmt.body)
    return self

  def exit_scope(self, scope: Scope, node: ast.Node, last: bool) -> None:
    unused = [b for b in scope.declared() if not b.used and not is_exempt(b)]
    reporter = self.owner.reporter
    for binding in unused:
      if binding.kind is not BindingKind.IMPORT:
        reporter.unused_binding(self.file, binding)
        self._silence(binding)
    for binding in unused:
      if binding.kind is BindingKind.IMPORT:
        reporter.unused_import(self.file, binding.ident)
        self._blank_import(binding.ident)

  def _silence(self, binding: Binding) -> None:
    if not self.owner.settings.fix or binding.kind is not BindingKind.VALUE or binding.param:
      return
    for offset, template in self.placements.get(binding.owner, ()):
      self.patches.add(Insert(offset, template.format(name=binding.name)))

  def _blank_import(self, spec: ast.ImportSpec) -> None:
    if not self.owner.settings.fix:
      return
    if spec.name is None:
      self.patches.add(Insert(spec.path.start, "_ "))
    else:
      self.patches.add(Replace(spec.name, text="_"))
