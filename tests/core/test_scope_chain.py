"""
Tests for the lexical scope chain and import naming.
"""

import pytest

from go_rewire.core.scope import Binding, BindingKind, Scope, import_name
from go_rewire.syntax import nodes as ast


def _ident(name: str) -> ast.Ident:
  return ast.Ident(start=0, end=len(name), name=name)


def _bind(scope: Scope, name: str, kind: BindingKind = BindingKind.VALUE) -> Binding:
  return scope.insert(Binding(name, kind, _ident(name)))


def _spec(path: str, alias: str = None) -> ast.ImportSpec:
  lit = ast.BasicLit(start=0, end=len(path) + 2, kind="string", value=f'"{path}"')
  return ast.ImportSpec(start=0, end=lit.end, name=_ident(alias) if alias else None, path=lit)


def test_lookup_walks_outward():
  root = Scope(outer=None, node=None)
  outer = _bind(root, "a")
  inner = root.new_scope(_ident("blk"))
  shadow = _bind(inner, "a")

  assert inner.lookup("a") is shadow
  assert root.lookup("a") is outer
  assert inner.lookup("missing") is None
  assert inner.depth() == 1


def test_blank_and_init_are_not_inserted():
  """
  Scenario: Declaring '_' and a function named init.
  Expectation: Neither becomes visible.
  """
  scope = Scope(outer=None, node=None)
  assert _bind(scope, "_") is None
  assert _bind(scope, "init", BindingKind.FUNC) is None
  assert _bind(scope, "init", BindingKind.VALUE) is not None
  assert list(b.name for b in scope.declared()) == ["init"]


def test_local_block_lookup_follows_continuations_only():
  """
  Scenario: ``:=`` continuation scopes inside a block nested in a function scope.
  Expectation: lookup_local_block sees the block and its continuations, not the function.
  """
  fn = Scope(outer=None, node=_ident("fn"))
  param = _bind(fn, "p")
  block = fn.new_scope(_ident("block"))
  first = _bind(block, "x")
  cont = block.continue_scope()
  second = _bind(cont, "y")

  assert cont.continuation
  assert cont.node is block.node
  assert cont.lookup_local_block("x") is first
  assert cont.lookup_local_block("y") is second
  assert cont.lookup_local_block("p") is None
  assert cont.lookup("p") is param


def test_declared_skips_replaced_bindings():
  scope = Scope(outer=None, node=None)
  _bind(scope, "a")
  _bind(scope, "b")
  again = _bind(scope, "a")

  declared = list(scope.declared())
  assert [b.name for b in declared] == ["b", "a"]
  assert declared[1] is again


@pytest.mark.parametrize(
  "path, alias, expected",
  [
    ("fmt", None, "fmt"),
    ("net/http", None, "http"),
    ("example.com/mod/v2", None, "mod"),
    ("gopkg.in/yaml.v3", None, "yaml"),
    ("github.com/x/go-ini", None, "go_ini"),
    ("net/http", "h", "h"),
    ("fmt", ".", "."),
  ],
)
def test_import_name(path, alias, expected):
  assert import_name(_spec(path, alias)) == expected
