"""
Visitor Composer.

``MultiVisitor`` runs several independent ``ScopeVisitor`` instances in a
single walk. Each sub-visitor sees the same node and scope and evolves on its
own; a ``None`` answer retires that sub-visitor for the subtree only.
"""

from typing import Optional

from go_rewire.core.pvector import PVector
from go_rewire.core.scope import Scope
from go_rewire.core.walker import ScopeVisitor
from go_rewire.syntax import nodes as ast


class MultiVisitor(ScopeVisitor):
  """
  Composes visitors over a persistent vector.

  Sibling subtrees receive the same ``MultiVisitor`` value; a visit that
  changes one sub-visitor produces a new vector sharing the untouched slots,
  so no sibling ever observes another's replacement.
  """

  def __init__(self, *visitors: Optional[ScopeVisitor], _vector: Optional[PVector] = None):
    self.visitors: PVector = _vector if _vector is not None else PVector(visitors)

  def _dispatch(self, call) -> Optional["MultiVisitor"]:
    vector = self.visitors
    alive = False
    for i, sub in enumerate(self.visitors):
      if sub is None:
        continue
      nxt = call(sub)
      if nxt is not sub:
        vector = vector.set(i, nxt)
      if nxt is not None:
        alive = True
    if not alive:
      return None
    if vector is self.visitors:
      return self
    return MultiVisitor(_vector=vector)

  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional["MultiVisitor"]:
    return self._dispatch(lambda sub: sub.visit_expr(scope, expr))

  def visit_stmt(self, scope: Scope, stmt: ast.Stmt) -> Optional["MultiVisitor"]:
    return self._dispatch(lambda sub: sub.visit_stmt(scope, stmt))

  def visit_decl(self, scope: Scope, decl: ast.Decl) -> Optional["MultiVisitor"]:
    return self._dispatch(lambda sub: sub.visit_decl(scope, decl))

  def exit_scope(self, scope: Scope, node: ast.Node, last: bool) -> None:
    for sub in self.visitors:
      if sub is not None:
        sub.exit_scope(scope, node, last)
