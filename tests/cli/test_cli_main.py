"""
Tests for the CLI entry point and its handlers.

The toolchain itself is never invoked: ``subprocess.run`` is replaced by a mock
that records the retargeted command and inspects the instrumented tree.
"""

import io
import shutil
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from go_rewire import __version__
from go_rewire.cli.__main__ import main
from go_rewire.instrument import command as command_module
from go_rewire.utils.console import set_console

APP_MAIN = 'package main\nimport (\n\t"fmt"\n\t"os"\n)\nfunc main() {\n\tn := must(fmt.Println("hi"))\n}\n'
APP_TEST = 'package main\nimport "testing"\nfunc TestHi(t *testing.T) {}\n'


@pytest.fixture
def capture():
  capture_console = Console(record=True, width=200, file=io.StringIO())
  set_console(capture_console)
  return capture_console


@pytest.fixture
def app(tmp_path, monkeypatch):
  """A standalone main package; the working directory is its parent."""
  directory = tmp_path / "app"
  directory.mkdir()
  (directory / "main.go").write_text(APP_MAIN, encoding="utf-8")
  (directory / "main_test.go").write_text(APP_TEST, encoding="utf-8")
  monkeypatch.chdir(tmp_path)
  monkeypatch.delenv("GOPATH", raising=False)
  return directory


@pytest.fixture
def toolchain(monkeypatch):
  """Records every toolchain call together with the files visible in its working directory."""
  calls = []

  def fake_run(argv, cwd, env):
    files = {p.relative_to(cwd).as_posix(): p.read_text(encoding="utf-8") for p in Path(cwd).rglob("*.go")}
    calls.append({"argv": argv, "cwd": Path(cwd), "env": env, "files": files})
    return MagicMock(returncode=0)

  monkeypatch.setattr(command_module.subprocess, "run", fake_run)
  return calls


def test_version(capsys):
  with pytest.raises(SystemExit) as exc:
    main(["--version"])
  assert exc.value.code == 0
  assert __version__ in capsys.readouterr().out


def test_unused_command_lists_findings(app, capture):
  """
  Scenario: ``go-rewire unused main.go`` on a file with an unused local and import.
  Expectation: Exit 0 and a table naming both with their locations.
  """
  assert main(["unused", str(app / "main.go")]) == 0
  output = capture.export_text()
  assert "main.go:7:2" in output
  assert "n" in output
  assert '"os"' in output


def test_unused_command_clean_file(tmp_path, capture):
  path = tmp_path / "ok.go"
  path.write_text("package main\nfunc main() {}\n", encoding="utf-8")
  assert main(["unused", str(path)]) == 0
  assert "No unused bindings." in capture.export_text()


def test_unused_command_missing_and_broken_files(tmp_path, capture):
  broken = tmp_path / "bad.go"
  broken.write_text("package main\nfunc {\n", encoding="utf-8")
  assert main(["unused", str(tmp_path / "nope.go"), str(broken)]) == 1
  output = capture.export_text()
  assert "File not found" in output
  assert "bad.go:" in output


def test_instrument_command_writes_output(app, tmp_path, capture):
  out = tmp_path / "out"
  assert main(["instrument", "app", "--out", str(out)]) == 0

  content = (out / "main.go").read_text(encoding="utf-8")
  assert '\t_ "os"\n' in content
  assert "n, assignerr_0 := fmt.Println(\"hi\"); if assignerr_0 != nil { panic(assignerr_0) }; _ = n" in content
  assert not (out / "main_test.go").exists()
  assert "Wrote 1 files" in capture.export_text()


def test_instrument_command_with_tests_and_pass_selection(app, tmp_path):
  out = tmp_path / "out"
  assert main(["instrument", "app", "--tests", "--passes", "unused", "--out", str(out)]) == 0

  assert (out / "main_test.go").is_file()
  assert "must(fmt.Println" in (out / "main.go").read_text(encoding="utf-8")


def test_instrument_command_pass_settings(app, tmp_path):
  out = tmp_path / "out"
  assert main(["instrument", "app", "--passes", "unused", "--config", "fix=false", "--out", str(out)]) == 0
  assert (out / "main.go").read_text(encoding="utf-8") == APP_MAIN


def test_errors_become_exit_status(tmp_path, monkeypatch, capture):
  monkeypatch.chdir(tmp_path)
  (tmp_path / "empty").mkdir()
  assert main(["instrument", "empty"]) == 1
  assert "no buildable Go source files" in capture.export_text()

  assert main(["instrument", "empty", "--passes", "bogus"]) == 1
  assert main(["instrument", "empty", "--config", "novalue"]) == 1


def test_build_runs_retargeted_toolchain(app, toolchain, monkeypatch):
  """
  Scenario: ``go-rewire build`` inside the package directory.
  Expectation: go build runs in a temporary instrumented tree, writes the binary back, and the tree is removed.
  """
  monkeypatch.chdir(app)
  assert main(["build"]) == 0

  (call,) = toolchain
  argv = call["argv"]
  assert argv[:2] == ["go", "build"]
  assert argv[2].startswith("-o=")
  assert (call["cwd"] / argv[2][3:]).resolve() == app.resolve() / "app"
  assert call["env"]["GO111MODULE"] == "off"
  assert "assignerr_0" in call["files"]["main.go"]
  assert "main_test.go" not in call["files"]
  assert not call["cwd"].exists()


def test_build_keep_output(app, toolchain, monkeypatch):
  monkeypatch.chdir(app)
  assert main(["build", "--keep"]) == 0
  cwd = toolchain[0]["cwd"]
  assert cwd.exists()
  shutil.rmtree(cwd)


def test_test_verb_includes_tests_and_forwards_flags(app, toolchain):
  assert main(["test", "./app", "-run", "TestHi"]) == 0

  (call,) = toolchain
  assert call["argv"] == ["go", "test", "-run", "TestHi"]
  assert "main_test.go" in call["files"]


def test_toolchain_exit_code_is_returned(app, monkeypatch):
  monkeypatch.setattr(command_module.subprocess, "run", MagicMock(return_value=MagicMock(returncode=2)))
  assert main(["run", "app/main.go"]) == 2
