"""
Tests for the visitor composer.

Verifies:
1. Each sub-visitor sees every node until it retires itself.
2. Retiring one sub-visitor leaves its siblings running.
3. A replacement made in one subtree is invisible to sibling subtrees.
"""

from typing import List, Optional

from go_rewire.core.multi_visitor import MultiVisitor
from go_rewire.core.scope import Scope
from go_rewire.core.walker import ScopeVisitor, walk_file
from go_rewire.syntax import nodes as ast


class Log(ScopeVisitor):
  """Appends the name of every identifier it sees to a shared list."""

  def __init__(self, seen: List[str], tag: str = ""):
    self.seen = seen
    self.tag = tag

  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional[ScopeVisitor]:
    if isinstance(expr, ast.Ident):
      self.seen.append(self.tag + expr.name)
    return self


class StopAtCalls(Log):
  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional[ScopeVisitor]:
    if isinstance(expr, ast.CallExpr):
      return None
    return super().visit_expr(scope, expr)


class TagInsideCalls(Log):
  """Switches to a tagged copy of itself below every call."""

  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional[ScopeVisitor]:
    if isinstance(expr, ast.CallExpr):
      return TagInsideCalls(self.seen, "call:")
    return super().visit_expr(scope, expr)


class Exits(ScopeVisitor):
  def __init__(self):
    self.count = 0

  def exit_scope(self, scope: Scope, node: ast.Node, last: bool) -> None:
    self.count += 1


SOURCE = """
package main
func main() {
  a := f(x)
  b := y
}
"""


def test_all_sub_visitors_see_all_nodes(go_file):
  first: List[str] = []
  second: List[str] = []
  walk_file(MultiVisitor(Log(first), Log(second)), go_file(SOURCE).tree)
  assert first == second
  assert first == ["f", "x", "y"]


def test_retired_sub_visitor_does_not_stop_siblings(go_file):
  """
  Scenario: One sub-visitor prunes at calls, the other does not.
  Expectation: Only the pruning one misses the call's children; both see later siblings.
  """
  pruned: List[str] = []
  full: List[str] = []
  walk_file(MultiVisitor(StopAtCalls(pruned), Log(full)), go_file(SOURCE).tree)
  assert pruned == ["y"]
  assert full == ["f", "x", "y"]


def test_replacement_is_scoped_to_subtree(go_file):
  """
  Scenario: A sub-visitor swaps itself for a tagged copy inside a call.
  Expectation: The tag applies to the call's children only, not to later statements.
  """
  seen: List[str] = []
  walk_file(MultiVisitor(TagInsideCalls(seen), Log([])), go_file(SOURCE).tree)
  assert seen == ["call:f", "call:x", "y"]


def test_dispatch_results():
  """
  Scenario: Direct hook calls on a composed visitor.
  Expectation: Unchanged -> same object; a change -> new composer sharing the rest; all retired -> None.
  """
  scope = Scope(outer=None, node=None)
  call = ast.CallExpr(start=0, end=3, fun=ast.Ident(start=0, end=1, name="f"))
  keep = Log([])
  multi = MultiVisitor(keep, StopAtCalls([]))

  ident = ast.Ident(start=0, end=1, name="z")
  assert multi.visit_expr(scope, ident) is multi

  after_call = multi.visit_expr(scope, call)
  assert after_call is not multi
  assert list(after_call.visitors) == [keep, None]
  assert len(multi.visitors) == 2
  assert multi.visitors[1] is not None

  assert MultiVisitor(StopAtCalls([])).visit_expr(scope, call) is None


def test_exit_scope_is_forwarded(go_file):
  a, b = Exits(), Exits()
  walk_file(MultiVisitor(a, b), go_file(SOURCE).tree)
  assert a.count == b.count > 0
