"""
Tests for the single-source engine and the package-level convenience API.
"""

import pytest

import go_rewire
from go_rewire.config import RuntimeConfig
from go_rewire.core.engine import InstrumentEngine, build_passes
from go_rewire.errors import ConfigurationError
from go_rewire.passes import MustPass, UnusedPass

SRC = "package main\nimport \"os\"\nfunc main() {\n\tf := must(open())\n}\n"


def test_build_passes_follows_config_order():
  config = RuntimeConfig(passes=["unused", "must"], pass_settings={"must_keyword": "check", "fix": False})
  passes = build_passes(config)

  assert [type(p) for p in passes] == [UnusedPass, MustPass]
  assert passes[0].settings.fix is False
  assert passes[1].keyword == "check"


def test_build_passes_rejects_bad_settings():
  config = RuntimeConfig(passes=["unused"], pass_settings={"fix": "not-a-bool"})
  with pytest.raises(ConfigurationError):
    build_passes(config)


def test_run_applies_all_default_passes():
  """
  Scenario: Default configuration over a file using must and an unused import.
  Expectation: Both rewrites appear and the patch count reflects them.
  """
  engine = InstrumentEngine(config=RuntimeConfig())
  result = engine.run(SRC, "main.go")

  assert result.success
  assert 'import _ "os"' in result.code
  assert "f, assignerr_0 := open(); if assignerr_0 != nil { panic(assignerr_0) }; _ = f" in result.code
  assert result.patch_count == 6
  assert result.errors == []


def test_run_reports_syntax_errors():
  engine = InstrumentEngine(config=RuntimeConfig())
  result = engine.run("package main\nfunc {", "broken.go")

  assert not result.success
  assert result.code == "package main\nfunc {"
  assert result.errors and result.errors[0].startswith("broken.go:")


def test_diagnostics_are_per_run():
  engine = InstrumentEngine(config=RuntimeConfig(passes=["must"]))
  bad = engine.run("package main\nfunc main() { println(must()) }\n", "a.go")
  good = engine.run("package main\nfunc main() {}\n", "b.go")

  assert len(bad.diagnostics) == 1
  assert bad.has_diagnostics
  assert bad.diagnostics[0].startswith("a.go:2:")
  assert good.diagnostics == []
  assert len(engine.diagnostics()) == 1


def test_run_file(tmp_path):
  path = tmp_path / "m.go"
  path.write_text("package main\nimport \"os\"\nfunc main() {}\n", encoding="utf-8")
  result = InstrumentEngine(config=RuntimeConfig(passes=["unused"])).run_file(path)
  assert result.code == "package main\nimport _ \"os\"\nfunc main() {}\n"


def test_explicit_pass_instances_override_config():
  engine = InstrumentEngine(config=RuntimeConfig(), passes=[UnusedPass()])
  result = engine.run(SRC)
  assert "must(open())" in result.code


def test_instrument_source_api():
  out = go_rewire.instrument_source(SRC, passes=["must"], pass_settings={"must_keyword": "must"})
  assert "f, assignerr_0 := open()" in out
  assert 'import "os"' in out

  with pytest.raises(ValueError, match="Instrumentation failed"):
    go_rewire.instrument_source("package")
