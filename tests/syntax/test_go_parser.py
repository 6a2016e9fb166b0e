"""
Tests for the tree-sitter parser adapter.

Verifies:
1. Offsets on converted nodes point at the original bytes.
2. Statement shapes the passes rely on (define, clauses, type switch).
3. Syntax errors raise GoSyntaxError with 1-based positions.
"""

import pytest

from go_rewire.errors import GoSyntaxError
from go_rewire.syntax import GoParser, parse_file, parse_source
from go_rewire.syntax import nodes as ast


def _body(source: str) -> list:
  tree = parse_source(source)
  return tree.find_func("main").body.list


def test_package_imports_and_decls():
  """
  Scenario: File with grouped and aliased imports, a var and a func.
  Expectation: Imports listed once each, quotes stripped by import_path.
  """
  src = 'package main\n\nimport (\n\t"fmt"\n\tx "os"\n)\n\nvar a = 1\n\nfunc main() {}\n'
  tree = parse_source(src, "m.go")

  assert tree.filename == "m.go"
  assert tree.package.name == "main"
  assert [s.import_path for s in tree.imports] == ["fmt", "os"]
  assert tree.imports[0].name is None
  assert tree.imports[1].name.name == "x"
  kinds = [type(d).__name__ for d in tree.decls]
  assert kinds == ["GenDecl", "GenDecl", "FuncDecl"]
  assert tree.find_func("main") is tree.decls[-1]
  assert tree.find_func("missing") is None


def test_offsets_match_source_bytes():
  """
  Scenario: Call expression inside a define.
  Expectation: start/end slice the exact text of each node.
  """
  src = "package main\nfunc main() { v := f(1, 2) }\n"
  data = src.encode()
  stmt = _body(src)[0]

  assert isinstance(stmt, ast.AssignStmt)
  assert stmt.is_define
  assert stmt.tok == ":="
  assert data[stmt.start : stmt.end] == b"v := f(1, 2)"
  call = stmt.rhs[0]
  assert isinstance(call, ast.CallExpr)
  assert data[call.start : call.end] == b"f(1, 2)"
  assert [data[a.start : a.end] for a in call.args] == [b"1", b"2"]


def test_block_braces():
  src = "package main\nfunc main() { x := 1; _ = x }\n"
  body = parse_source(src).find_func("main").body
  assert src[body.lbrace] == "{"
  assert src[body.rbrace] == "}"
  assert len(body.list) == 2


def test_switch_clause_colons():
  """
  Scenario: Expression switch with a default clause.
  Expectation: Clause colon offsets sit right after the ':' token; default has list None.
  """
  src = "package main\nfunc main() {\n\tswitch x := 1; x {\n\tcase 1:\n\t\tprintln(x)\n\tdefault:\n\t}\n}\n"
  stmt = _body(src)[0]

  assert isinstance(stmt, ast.SwitchStmt)
  assert isinstance(stmt.init, ast.AssignStmt)
  clauses = stmt.body.list
  assert len(clauses) == 2
  assert all(isinstance(c, ast.CaseClause) for c in clauses)
  assert clauses[1].list is None
  for clause in clauses:
    assert src[clause.colon - 1] == ":"


def test_type_switch_assign():
  """
  Scenario: ``switch v := x.(type)``.
  Expectation: assign is a define whose rhs is a TypeAssertExpr with no type.
  """
  src = "package main\nfunc main() {\n\tvar x interface{}\n\tswitch v := x.(type) {\n\tcase int:\n\t\t_ = v\n\t}\n}\n"
  stmt = _body(src)[1]

  assert isinstance(stmt, ast.TypeSwitchStmt)
  assert isinstance(stmt.assign, ast.AssignStmt)
  assert stmt.assign.is_define
  assert isinstance(stmt.assign.rhs[0], ast.TypeAssertExpr)
  assert stmt.assign.rhs[0].type is None


def test_select_comm_clauses():
  src = (
    "package main\nfunc main() {\n\tc := make(chan int)\n\tselect {\n\tcase v := <-c:\n\t\t_ = v\n\tdefault:\n\t}\n}\n"
  )
  stmt = _body(src)[1]

  assert isinstance(stmt, ast.SelectStmt)
  first, second = stmt.body.list
  assert isinstance(first, ast.CommClause)
  assert isinstance(first.comm, ast.AssignStmt)
  assert second.comm is None


def test_range_statement():
  src = "package main\nfunc main() {\n\tfor i, v := range []int{1} {\n\t\t_, _ = i, v\n\t}\n}\n"
  stmt = _body(src)[0]

  assert isinstance(stmt, ast.RangeStmt)
  assert stmt.tok == ":="
  assert stmt.key.name == "i"
  assert stmt.value.name == "v"


def test_method_with_generic_receiver():
  src = "package p\ntype L[T any] struct{}\nfunc (l *L[T]) Len() int { return 0 }\n"
  tree = parse_source(src)
  method = tree.decls[-1]

  assert isinstance(method, ast.FuncDecl)
  assert method.recv is not None
  assert tree.find_func("Len") is None


def test_syntax_error_position():
  """
  Scenario: Source with an unbalanced brace on line 2.
  Expectation: GoSyntaxError carrying the file name and a 1-based line.
  """
  with pytest.raises(GoSyntaxError) as exc:
    GoParser().parse("package main\nfunc main() {\n", "bad.go")

  assert exc.value.filename == "bad.go"
  assert exc.value.line >= 2
  assert str(exc.value).startswith("bad.go:")


def test_parse_file_reads_disk(tmp_path):
  path = tmp_path / "a.go"
  path.write_text("package a\n", encoding="utf-8")
  tree = parse_file(path)
  assert tree.package.name == "a"
  assert tree.filename == str(path)
