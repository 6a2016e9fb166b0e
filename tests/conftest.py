"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Source parsing helpers (``go_file``) for pass and walker tests.
- A throwaway GOPATH builder (``go_tree``) for package closure tests.
- Global pass registry isolation so tests registering custom passes do not leak.
"""

import sys
import textwrap
from pathlib import Path
from typing import Dict

import pytest

# Add src to path so we can import 'go_rewire' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Load the built-in passes so they form the "clean state" baseline
import go_rewire.passes  # noqa: E402
from go_rewire.core.patch import PatchableFile  # noqa: E402
from go_rewire.passes.registry import _PASSES  # noqa: E402
from go_rewire.utils.console import reset_console  # noqa: E402


def dedent(source: str) -> str:
  """Strips the common indentation of an inline Go snippet."""
  return textwrap.dedent(source).lstrip("\n")


@pytest.fixture
def go_file():
  """Factory parsing a Go snippet into a PatchableFile."""

  def _make(source: str, path: str = "main.go") -> PatchableFile:
    return PatchableFile.parse(path, dedent(source))

  return _make


class GoTree:
  """
  Writes Go packages below a temporary root.

  Attributes:
      root: The temporary directory.
      gopath: ``root/gopath``, a single GOPATH entry.
  """

  def __init__(self, root: Path):
    self.root = root
    self.gopath = root / "gopath"
    (self.gopath / "src").mkdir(parents=True)

  def write(self, rel: str, files: Dict[str, str]) -> Path:
    """Writes ``files`` into ``root/rel`` and returns the directory."""
    directory = self.root / rel
    directory.mkdir(parents=True, exist_ok=True)
    for name, source in files.items():
      (directory / name).write_text(dedent(source), encoding="utf-8")
    return directory

  def package(self, import_path: str, files: Dict[str, str]) -> Path:
    """Writes a package at ``GOPATH/src/<import_path>``."""
    return self.write(f"gopath/src/{import_path}", files)


@pytest.fixture
def go_tree(tmp_path, monkeypatch):
  """A GOPATH rooted in tmp_path, exported through the environment."""
  tree = GoTree(tmp_path)
  monkeypatch.setenv("GOPATH", str(tree.gopath))
  monkeypatch.delenv("GOROOT", raising=False)
  return tree


@pytest.fixture(autouse=True)
def isolate_pass_registry():
  """
  Ensures that passes registered by a test do not leak into the next one.
  """
  original_registry = _PASSES.copy()
  yield
  _PASSES.clear()
  _PASSES.update(original_registry)


@pytest.fixture(autouse=True)
def restore_console():
  """Tests may inject capturing consoles; always end on the default one."""
  yield
  reset_console()
