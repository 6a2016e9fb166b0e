"""
Implicit Error-Check Expander (``must``).

Rewrites calls to the reserved pseudo-function ``must(f(...))``, where ``f``
returns ``(T, error)``, into code that panics when the error is non-nil.

Three placements are recognised:

1.  **Top-level var spec**: ``var a = must(f())`` becomes
    ``var a, tlderr_N = f()`` and ``init`` gains the guard.
2.  **Assignment statement** that is a direct member of a statement list:
    ``a := must(f())`` becomes
    ``a, assignerr_N := f(); if assignerr_N != nil { panic(assignerr_N) }``.
    For ``=`` the error variable is declared first.
3.  **Anywhere else**: the call is hoisted before the enclosing list statement
    as ``var tmp_N, err_N = f(); if err_N != nil {panic(err_N)};`` and
    replaced by ``tmp_N``. At top level the hoisted ``var`` goes to the end of
    the file and the guard to ``init``.

Nested ``must`` calls inside the argument are expanded first.
"""

from typing import FrozenSet, List, Optional

from pydantic import BaseModel, Field

from go_rewire.core.patch import Insert, PatchableFile, PatchSet, Replace
from go_rewire.core.scope import Scope
from go_rewire.core.walker import ScopeVisitor, walk_expr
from go_rewire.errors import TempNameExhaustedError
from go_rewire.passes.base import InstrumentationPass
from go_rewire.passes.registry import register_pass
from go_rewire.syntax import nodes as ast

MAX_TEMP_ATTEMPTS = 10_000


class MustSettings(BaseModel):
  must_keyword: str = Field("must", description="Name of the pseudo-function to expand.")


class _FileState:
  """Per-file state shared by every visitor snapshot of one walk."""

  def __init__(self, file: PatchableFile, patches: PatchSet, init_errors: Optional[List[str]] = None):
    self.file = file
    self.patches = patches
    self.init_errors = init_errors if init_errors is not None else []

  def fork(self, patches: PatchSet) -> "_FileState":
    return _FileState(self.file, patches, self.init_errors)


@register_pass("must")
class MustPass(InstrumentationPass):
  """
  The ``must`` pass.

  The temporary-name counter belongs to the pass instance and is never reset
  during a run, so names stay unique across every file it touches.
  """

  settings_model = MustSettings

  def __init__(self, settings: Optional[MustSettings] = None):
    super().__init__(settings)
    self.keyword = self.settings.must_keyword
    self._counter = 0

  def temp_name(self, stem: str, scope: Scope) -> str:
    """
    Returns ``stem`` + counter for the first counter value not bound in ``scope``.

    Raises:
        TempNameExhaustedError: After ``MAX_TEMP_ATTEMPTS`` collisions.
    """
    for _ in range(MAX_TEMP_ATTEMPTS):
      name = f"{stem}{self._counter}"
      self._counter += 1
      if scope.lookup(name) is None:
        return name
    raise TempNameExhaustedError(f"no free '{stem}' name after {MAX_TEMP_ATTEMPTS} attempts")

  def visitor(self, file: PatchableFile, patches: PatchSet) -> ScopeVisitor:
    return MustVisitor(self, _FileState(file, patches))


class MustVisitor(ScopeVisitor):
  """
  Attributes:
      anchor: The statement-list member currently being walked (None at top level).
      members: Statements of the list being entered; visiting one makes it the anchor.
      handled: Calls already rewritten by an enclosing placement.
  """

  def __init__(
    self,
    owner: MustPass,
    state: _FileState,
    anchor: Optional[ast.Stmt] = None,
    members: FrozenSet[ast.Stmt] = frozenset(),
    handled: FrozenSet[ast.CallExpr] = frozenset(),
  ):
    self.owner = owner
    self.state = state
    self.anchor = anchor
    self.members = members
    self.handled = handled

  def _with(self, **changes) -> "MustVisitor":
    values = dict(
      owner=self.owner,
      state=self.state,
      anchor=self.anchor,
      members=self.members,
      handled=self.handled,
    )
    values.update(changes)
    return MustVisitor(**values)

  def is_must(self, expr: ast.Expr) -> bool:
    return (
      isinstance(expr, ast.CallExpr) and isinstance(expr.fun, ast.Ident) and expr.fun.name == self.owner.keyword
    )

  def _misuse(self, call: ast.CallExpr) -> None:
    self.owner.report(
      self.state.file,
      call.start,
      f"'{self.owner.keyword}' builtin must be called with exactly one argument",
    )

  def _strip(self, call: ast.CallExpr) -> None:
    """Removes the ``must(`` prefix and ``)`` suffix around the argument."""
    arg = call.args[0]
    self.state.patches.add(Replace(call.start, arg.start, ""))
    self.state.patches.add(Replace(arg.end, call.end, ""))

  # --- visits ---

  def visit_decl(self, scope: Scope, decl: ast.Decl) -> Optional[ScopeVisitor]:
    if not isinstance(decl, ast.GenDecl) or decl.tok != "var" or scope.node is not self.state.file.tree:
      return self
    handled = set(self.handled)
    for spec in decl.specs:
      if not isinstance(spec, ast.ValueSpec) or spec.type is not None or len(spec.values) != 1:
        continue
      call = spec.values[0]
      if not self.is_must(call) or len(call.args) != 1:
        continue
      err = self.owner.temp_name("tlderr_", scope)
      self.state.patches.add(Insert(spec.names[-1].end, f", {err}"))
      self._strip(call)
      self.state.init_errors.append(err)
      handled.add(call)
    return self._with(handled=frozenset(handled))

  def visit_stmt(self, scope: Scope, stmt: ast.Stmt) -> Optional[ScopeVisitor]:
    if isinstance(stmt, (ast.CaseClause, ast.CommClause)):
      # header expressions hoist in front of the enclosing switch or select
      return self._with(members=frozenset(stmt.body))
    v = self
    if stmt in self.members:
      v = self._with(anchor=stmt, members=frozenset())
    if isinstance(stmt, ast.BlockStmt):
      return v._with(members=frozenset(stmt.list))
    if (
      isinstance(stmt, ast.AssignStmt)
      and stmt is v.anchor
      and stmt.tok in (":=", "=")
      and len(stmt.rhs) == 1
      and v.is_must(stmt.rhs[0])
    ):
      return v._expand_assign(scope, stmt, stmt.rhs[0])
    return v

  def _expand_assign(self, scope: Scope, stmt: ast.AssignStmt, call: ast.CallExpr) -> Optional[ScopeVisitor]:
    if len(call.args) != 1:
      self._misuse(call)
      return None
    err = self.owner.temp_name("assignerr_", scope)
    patches = self.state.patches
    if stmt.tok == "=":
      patches.add(Insert(stmt.start, f"var {err} error; "))
    patches.add(Insert(stmt.lhs[-1].end, f", {err}"))
    self._strip(call)
    patches.add(Insert(stmt.end, f"; if {err} != nil {{ panic({err}) }}"))
    return self._with(handled=self.handled | {call})

  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional[ScopeVisitor]:
    if expr in self.handled:
      return self._with(handled=self.handled - {expr})
    if not self.is_must(expr):
      return self
    if len(expr.args) != 1:
      self._misuse(expr)
      return None
    self._hoist(scope, expr)
    return None

  def _hoist(self, scope: Scope, call: ast.CallExpr) -> None:
    arg = call.args[0]
    tmp = self.owner.temp_name("tmp_", scope)
    err = self.owner.temp_name("err_", scope)

    # Expand nested calls first; edits inside the argument travel with its text.
    inner = PatchSet()
    walk_expr(self._with(state=self.state.fork(inner), handled=frozenset()), arg, scope)
    file = self.state.file
    text = file.render_range(arg.start, arg.end, inner)
    self.state.patches.extend(
      p for p in inner.registered() if not (arg.start <= p.start and p.end <= arg.end)
    )

    if self.anchor is not None:
      self.state.patches.add(
        Insert(self.anchor.start, f"var {tmp}, {err} = {text}; if {err} != nil {{panic({err})}}; ")
      )
    else:
      self.state.patches.add(Insert(len(file.source), f"\nvar {tmp}, {err} = {text}\n"))
      self.state.init_errors.append(err)
    self.state.patches.add(Replace(call, text=tmp))

  def exit_scope(self, scope: Scope, node: ast.Node, last: bool) -> None:
    if not isinstance(node, ast.File) or not self.state.init_errors:
      return
    guards = "".join(f"\n\tif {e} != nil {{ panic({e}) }}" for e in self.state.init_errors)
    init = node.find_func("init")
    if init is not None and init.body is not None:
      self.state.patches.add(Insert(init.body.lbrace + 1, guards))
    else:
      self.state.patches.add(Insert(len(self.state.file.source), f"\nfunc init() {{{guards}\n}}\n"))
