"""
Tests for package loading and import resolution.
"""

import pytest

from go_rewire.errors import ImportResolutionError
from go_rewire.instrument.packages import PackageLoader, find_module, guess_base_path, is_local_import


@pytest.mark.parametrize(
  "path, expected",
  [(".", True), ("..", True), ("./x", True), ("../x/y", True), ("fmt", False), (".hidden", False)],
)
def test_is_local_import(path, expected):
  assert is_local_import(path) is expected


def test_load_dir_classifies_files(go_tree):
  """
  Scenario: Package with primary, in-package test, external test, underscore and ignored files.
  Expectation: Each file lands in its category; skipped files are absent; imports split by category.
  """
  directory = go_tree.package(
    "corp/lib",
    {
      "lib.go": 'package lib\nimport "strings"\nvar _ = strings.ToUpper\n',
      "lib_test.go": 'package lib\nimport "testing"\nfunc TestA(t *testing.T) {}\n',
      "ext_test.go": 'package lib_test\nimport "corp/lib"\nvar _ = lib.X\n',
      "_draft.go": "package lib\n",
      "gen.go": "//go:build ignore\n\npackage main\n",
    },
  )
  pkg = PackageLoader([go_tree.gopath]).load_dir(directory)

  assert pkg.name == "lib"
  assert pkg.import_path == "corp/lib"
  assert pkg.in_workspace
  assert pkg.go_files == ("lib.go",)
  assert pkg.test_go_files == ("lib_test.go",)
  assert pkg.xtest_go_files == ("ext_test.go",)
  assert pkg.imports == ("strings",)
  assert pkg.test_imports == ("testing",)
  assert pkg.xtest_imports == ("corp/lib",)
  assert pkg.test_files() == [directory.resolve() / "lib.go", directory.resolve() / "lib_test.go"]


def test_dir_outside_workspace(tmp_path):
  directory = tmp_path / "standalone"
  directory.mkdir()
  (directory / "main.go").write_text("package main\nfunc main() {}\n", encoding="utf-8")

  pkg = PackageLoader().load_dir(directory)
  assert pkg.import_path == "."
  assert not pkg.in_workspace
  assert pkg.name == "main"


def test_test_only_package_name(tmp_path):
  (tmp_path / "a_test.go").write_text("package foo_test\n", encoding="utf-8")
  pkg = PackageLoader().load_dir(tmp_path)
  assert pkg.name == "foo"
  assert pkg.go_files == ()


def test_empty_dir_raises(tmp_path):
  with pytest.raises(ImportResolutionError, match="no buildable Go source files"):
    PackageLoader().load_dir(tmp_path)


def test_resolution_order(go_tree, tmp_path):
  """
  Scenario: The same import path exists under GOPATH and GOROOT.
  Expectation: GOPATH wins; GOROOT is consulted for paths GOPATH lacks.
  """
  go_tree.package("dup", {"a.go": "package dup\n"})
  goroot = go_tree.write("goroot/src/dup", {"a.go": "package dup\n"}).parent.parent
  go_tree.write("goroot/src/fmt", {"print.go": "package fmt\n"})
  loader = PackageLoader([go_tree.gopath], goroot)

  assert loader.resolve("dup", tmp_path) == go_tree.gopath / "src" / "dup"
  assert loader.resolve("fmt", tmp_path) == goroot / "src" / "fmt"


def test_unresolvable_import(go_tree, tmp_path):
  loader = PackageLoader([go_tree.gopath])
  with pytest.raises(ImportResolutionError) as exc:
    loader.resolve("nowhere/pkg", tmp_path)
  assert exc.value.import_path == "nowhere/pkg"
  assert exc.value.importer == str(tmp_path)
  assert 'cannot find package "nowhere/pkg"' in str(exc.value)


def test_local_import_resolution(tmp_path):
  (tmp_path / "app").mkdir()
  (tmp_path / "util").mkdir()
  (tmp_path / "util" / "u.go").write_text("package util\n", encoding="utf-8")
  loader = PackageLoader()

  pkg = loader.load_import("../util", tmp_path / "app")
  assert pkg.dir == (tmp_path / "util").resolve()
  assert pkg.import_path == "."
  assert loader.load_dir(tmp_path / "util") is pkg


def test_module_resolution(tmp_path):
  """
  Scenario: A go.mod declares module example.org/m.
  Expectation: Import paths under the module resolve inside it; dirs report module import paths.
  """
  root = tmp_path / "m"
  (root / "sub").mkdir(parents=True)
  (root / "go.mod").write_text("module example.org/m\n\ngo 1.21\n", encoding="utf-8")
  (root / "sub" / "s.go").write_text("package sub\n", encoding="utf-8")
  loader = PackageLoader()

  assert find_module(root / "sub") == (root.resolve(), "example.org/m")
  assert loader.find_dir("example.org/m/sub", root) == root.resolve() / "sub"
  assert loader.import_path_for_dir(root / "sub") == "example.org/m/sub"
  assert loader.import_path_for_dir(root) == "example.org/m"


def test_files_are_parsed_once(tmp_path):
  path = tmp_path / "a.go"
  path.write_text("package a\n", encoding="utf-8")
  loader = PackageLoader()
  assert loader.load_file(path) is loader.load_file(tmp_path / "." / "a.go")


def test_guess_base_path_known_host(go_tree):
  loader = PackageLoader([go_tree.gopath])
  assert guess_base_path(loader, "github.com/user/repo/cmd/tool") == "github.com/user/repo"


def test_guess_base_path_walks_up(go_tree):
  """
  Scenario: corp/proj holds Go files, corp does not.
  Expectation: The base stops at the highest ancestor that is still a package.
  """
  go_tree.package("corp/proj", {"p.go": "package proj\n"})
  go_tree.package("corp/proj/cmd", {"main.go": "package main\n"})
  (go_tree.gopath / "src" / "other").mkdir()
  loader = PackageLoader([go_tree.gopath])

  assert guess_base_path(loader, "corp/proj/cmd", go_tree.root) == "corp/proj"
  assert guess_base_path(loader, "solo", go_tree.root) == "solo"


def test_guess_base_path_prefers_module(tmp_path):
  root = tmp_path / "m"
  (root / "cmd").mkdir(parents=True)
  (root / "go.mod").write_text('module "github.com/a/b/v2"\n', encoding="utf-8")
  loader = PackageLoader()
  assert guess_base_path(loader, "github.com/a/b/v2/cmd", root / "cmd") == "github.com/a/b/v2"
