"""
Tests for the toolchain command model.

Verifies:
1. Parsing of build/run/test invocations into flags, params and extras.
2. Output name inference.
3. Retargeting onto an instrumented tree.
4. Execution through subprocess (mocked).
"""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from go_rewire.errors import ConfigurationError
from go_rewire.instrument import command as command_module
from go_rewire.instrument.command import GoCmd
from go_rewire.instrument.packages import PackageLoader


def test_parse_build():
  cmd = GoCmd.parse(Path("/w"), ["go", "build", "-o", "bin/app", "-v", "-tags=net", "./cmd"])
  assert cmd.command == "build"
  assert cmd.build_flags == {"o": "bin/app", "v": "true", "tags": "net"}
  assert cmd.params == ["./cmd"]
  assert cmd.extra_flags == []
  assert cmd.args() == ["build", "-o=bin/app", "-v=true", "-tags=net", "./cmd"]
  assert str(cmd) == "go build -o=bin/app -v=true -tags=net ./cmd"


def test_parse_test_splits_extra_flags():
  """
  Scenario: ``go test -v ./pkg -run TestA``.
  Expectation: Build flags before the package, test binary flags after it.
  """
  cmd = GoCmd.parse(Path("/w"), ["go", "test", "-v", "./pkg", "-run", "TestA"])
  assert cmd.build_flags == {"v": "true"}
  assert cmd.params == ["./pkg"]
  assert cmd.extra_flags == ["-run", "TestA"]


def test_parse_test_stops_at_unknown_flag():
  cmd = GoCmd.parse(Path("/w"), ["go", "test", "-run", "X"])
  assert cmd.build_flags == {}
  assert cmd.params == []
  assert cmd.extra_flags == ["-run", "X"]


def test_parse_run_files_and_program_args():
  cmd = GoCmd.parse(Path("/w"), ["go", "run", "a.go", "b.go", "--verbose", "x"])
  assert cmd.params == ["a.go", "b.go"]
  assert cmd.extra_flags == ["--verbose", "x"]


def test_parse_double_dash_ends_flags():
  cmd = GoCmd.parse(Path("/w"), ["go", "build", "--", "./x"])
  assert cmd.params == ["./x"]


@pytest.mark.parametrize(
  "args, message",
  [
    (["go"], "at least two"),
    (["go", "vet"], "Unsupported go command 'vet'"),
    (["go", "build", "-o"], "flag needs an argument: -o"),
    (["go", "build", "-zzz"], "flag provided but not defined: -zzz"),
    (["go", "run", "-o", "x", "a.go"], "flag provided but not defined: -o"),
  ],
)
def test_parse_errors(args, message):
  with pytest.raises(ConfigurationError, match=message):
    GoCmd.parse(Path("/w"), args)


@pytest.fixture
def app_dir(tmp_path):
  app = tmp_path / "app"
  app.mkdir()
  (app / "main.go").write_text("package main\nfunc main() {}\n", encoding="utf-8")
  (app / "tool.go").write_text("package main\n", encoding="utf-8")
  lib = tmp_path / "lib"
  lib.mkdir()
  (lib / "lib.go").write_text("package lib\n", encoding="utf-8")
  return app


def test_output_file_name(app_dir):
  loader = PackageLoader()
  assert GoCmd.parse(app_dir, ["go", "build"]).output_file_name(loader) == "app"
  assert GoCmd.parse(app_dir, ["go", "build", "tool.go", "main.go"]).output_file_name(loader) == "tool"


def test_output_file_name_rejects_libraries(app_dir):
  with pytest.raises(ConfigurationError, match="not a main package"):
    GoCmd.parse(app_dir, ["go", "build", "../lib"]).output_file_name(PackageLoader())


def test_multiple_packages_rejected(app_dir):
  cmd = GoCmd.parse(app_dir, ["go", "build", ".", "../lib"])
  with pytest.raises(ConfigurationError, match="more than a single package"):
    cmd.target_package(PackageLoader())
  with pytest.raises(ConfigurationError, match="more than a single package"):
    cmd.instrumentable(None, PackageLoader())


def test_retarget_build_keeps_output_location(app_dir, tmp_path):
  """
  Scenario: ``go build`` from the package dir, retargeted onto another dir.
  Expectation: -o points back to where the original binary would land; GOPATH mode is forced.
  """
  newdir = tmp_path / "instrumented"
  newdir.mkdir()
  cmd = GoCmd.parse(app_dir, ["go", "build", "-v"])
  moved = cmd.retarget(newdir, PackageLoader())

  assert moved.workdir == newdir
  assert moved.build_flags == {"v": "true", "o": os.path.join("..", "app", "app")}
  assert moved.env == {"GO111MODULE": "off"}
  assert cmd.build_flags == {"v": "true"}


def test_retarget_absolute_output_untouched(app_dir, tmp_path):
  cmd = GoCmd.parse(app_dir, ["go", "build", "-o", "/opt/bin/app"])
  assert cmd.retarget(tmp_path).build_flags["o"] == "/opt/bin/app"


def test_retarget_run_files_and_test_package(app_dir, tmp_path):
  run = GoCmd.parse(app_dir, ["go", "run", "sub/a.go", "arg"]).retarget(tmp_path)
  assert run.params == ["a.go"]
  assert run.extra_flags == ["arg"]

  test = GoCmd.parse(app_dir, ["go", "test", "./pkg", "-run", "X"]).retarget(tmp_path)
  assert test.params == []
  assert test.extra_flags == ["-run", "X"]


def test_instrumentable_per_param_form(app_dir, tmp_path):
  loader = PackageLoader()
  from_dir = GoCmd.parse(app_dir, ["go", "build"]).instrumentable(None, loader)
  from_local = GoCmd.parse(tmp_path, ["go", "build", "./app"]).instrumentable(None, loader)
  from_files = GoCmd.parse(app_dir, ["go", "run", "main.go"]).instrumentable(None, loader)

  assert from_dir.package.dir == app_dir.resolve()
  assert from_local.package.dir == app_dir.resolve()
  assert from_files.package.go_files == ("main.go",)


def test_run_invokes_toolchain(monkeypatch, tmp_path):
  completed = MagicMock(returncode=3)
  runner = MagicMock(return_value=completed)
  monkeypatch.setattr(command_module.subprocess, "run", runner)

  cmd = GoCmd(tmp_path, "go", "test", {"v": "true"}, [], ["-run", "X"], {"GO111MODULE": "off"})
  assert cmd.run() == 3

  args, kwargs = runner.call_args
  assert args[0] == ["go", "test", "-v=true", "-run", "X"]
  assert kwargs["cwd"] == tmp_path
  assert kwargs["env"]["GO111MODULE"] == "off"
