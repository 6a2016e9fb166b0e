"""
Go Package Loader.

Resolves import paths to package directories and classifies their files.

Resolution order for an import path seen from a source directory:

1.  Local paths (``./x``, ``../x``) relative to the importing directory.
2.  The enclosing ``go.mod`` module, when the path lies under its module path.
3.  Every ``GOPATH`` entry (``<entry>/src/<path>``).
4.  ``GOROOT/src/<path>``.

Only the ``ignore`` build constraint is honoured; files named ``_*`` or
``.*`` are skipped as the go tool does.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from go_rewire.core.patch import PatchableFile
from go_rewire.errors import ImportResolutionError
from go_rewire.syntax.parser import GoParser

logger = logging.getLogger(__name__)

_BUILD_IGNORE = re.compile(r"^//\s*(go:build|\+build)\s+.*\bignore\b")
_MODULE_LINE = re.compile(r"^\s*module\s+(\S+)")

KNOWN_HOSTS = ("github.com", "bitbucket.org", "gitlab.com", "launchpad.net", "code.google.com")


def is_local_import(path: str) -> bool:
  return path in (".", "..") or path.startswith("./") or path.startswith("../")


@dataclass(frozen=True)
class GoPackage:
  """
  A Go package as found on disk.

  ``import_path`` is ``"."`` for a directory outside any GOPATH entry or
  module. File names are base names relative to ``dir``.
  """

  import_path: str
  dir: Path
  name: str
  go_files: Tuple[str, ...] = ()
  test_go_files: Tuple[str, ...] = ()
  xtest_go_files: Tuple[str, ...] = ()
  imports: Tuple[str, ...] = ()
  test_imports: Tuple[str, ...] = ()
  xtest_imports: Tuple[str, ...] = ()

  @property
  def in_workspace(self) -> bool:
    return self.import_path != "."

  def files(self) -> List[Path]:
    return [self.dir / f for f in self.go_files]

  def test_files(self) -> List[Path]:
    """Primary files plus the in-package ``_test.go`` files."""
    return [self.dir / f for f in self.go_files + self.test_go_files]

  def xtest_files(self) -> List[Path]:
    return [self.dir / f for f in self.xtest_go_files]


def _ignored(source: bytes) -> bool:
  for raw in source.decode("utf-8", errors="replace").splitlines():
    line = raw.strip()
    if not line:
      continue
    if line.startswith("package "):
      return False
    if _BUILD_IGNORE.match(line):
      return True
  return False


def find_module(directory: Path) -> Optional[Tuple[Path, str]]:
  """Returns (module root, module path) of the ``go.mod`` enclosing ``directory``."""
  current = directory.resolve()
  for parent in [current, *current.parents]:
    gomod = parent / "go.mod"
    if gomod.is_file():
      for line in gomod.read_text(encoding="utf-8").splitlines():
        match = _MODULE_LINE.match(line)
        if match:
          return parent, match.group(1).strip('"')
      return None
  return None


class PackageLoader:
  """
  Loads packages and caches parsed files for one run.

  Args:
      gopath: GOPATH entries.
      goroot: Go installation root, if known.
  """

  def __init__(self, gopath: Sequence[Path] = (), goroot: Optional[Path] = None):
    self.gopath = [Path(p) for p in gopath]
    self.goroot = Path(goroot) if goroot else None
    self._parser = GoParser()
    self._files: Dict[Path, PatchableFile] = {}
    self._packages: Dict[Path, GoPackage] = {}

  def load_file(self, path: Path) -> PatchableFile:
    """Parses ``path`` once per run."""
    key = Path(path).resolve()
    cached = self._files.get(key)
    if cached is None:
      data = key.read_bytes()
      cached = PatchableFile(path, data, self._parser.parse(data, str(path)))
      self._files[key] = cached
    return cached

  # --- resolution ---

  def import_path_for_dir(self, directory: Path) -> str:
    """The import path ``directory`` has in a module or GOPATH, or ``"."``."""
    directory = directory.resolve()
    module = find_module(directory)
    if module is not None:
      root, module_path = module
      rel = directory.relative_to(root).as_posix()
      return module_path if rel == "." else f"{module_path}/{rel}"
    for entry in self.gopath:
      src = (entry / "src").resolve()
      if src in directory.parents:
        return directory.relative_to(src).as_posix()
    return "."

  def find_dir(self, import_path: str, src_dir: Path) -> Optional[Path]:
    if is_local_import(import_path):
      candidate = (src_dir / import_path).resolve()
      return candidate if candidate.is_dir() else None
    module = find_module(src_dir)
    if module is not None:
      root, module_path = module
      if import_path == module_path:
        return root
      if import_path.startswith(module_path + "/"):
        candidate = root / import_path[len(module_path) + 1 :]
        return candidate if candidate.is_dir() else None
    roots = [entry / "src" for entry in self.gopath]
    if self.goroot is not None:
      roots.append(self.goroot / "src")
    for root in roots:
      candidate = root / import_path
      if candidate.is_dir():
        return candidate
    return None

  def exists(self, import_path: str, src_dir: Path) -> bool:
    """True if ``import_path`` resolves to a directory holding Go files."""
    found = self.find_dir(import_path, src_dir)
    return found is not None and any(p.is_file() for p in found.glob("*.go"))

  def resolve(self, import_path: str, src_dir: Path) -> Path:
    """
    Resolves an import path seen from ``src_dir``.

    Raises:
        ImportResolutionError: If no directory matches.
    """
    found = self.find_dir(import_path, src_dir)
    if found is None:
      raise ImportResolutionError(import_path, importer=str(src_dir))
    logger.debug("resolved %s from %s to %s", import_path, src_dir, found)
    return found

  # --- loading ---

  def load_import(self, import_path: str, src_dir: Path) -> GoPackage:
    directory = self.resolve(import_path, src_dir)
    canonical = self.import_path_for_dir(directory) if is_local_import(import_path) else import_path
    return self.load_dir(directory, canonical)

  def load_dir(self, directory: Path, import_path: Optional[str] = None) -> GoPackage:
    """
    Loads the package in ``directory``.

    Raises:
        ImportResolutionError: If the directory holds no Go files.
    """
    directory = Path(directory).resolve()
    cached = self._packages.get(directory)
    if cached is not None:
      return cached
    if import_path is None:
      import_path = self.import_path_for_dir(directory)
    names = sorted(p.name for p in directory.glob("*.go") if p.is_file())
    package = self.load_files([directory / n for n in names], import_path, directory)
    self._packages[directory] = package
    return package

  def load_files(self, files: Iterable[Path], import_path: str = ".", directory: Optional[Path] = None) -> GoPackage:
    """Builds a package from explicit files (all assumed to live in one directory)."""
    paths = [Path(f) for f in files]
    if directory is None:
      directory = paths[0].resolve().parent if paths else Path.cwd()
    go_files: List[str] = []
    test_files: List[str] = []
    xtest_files: List[str] = []
    imports: Dict[str, List[str]] = {"go": [], "test": [], "xtest": []}
    name = ""
    for path in paths:
      if path.name.startswith(("_", ".")) or _ignored(path.read_bytes()):
        continue
      tree = self.load_file(path).tree
      pkg_name = tree.package.name
      if path.name.endswith("_test.go"):
        kind = "xtest" if pkg_name.endswith("_test") else "test"
        (xtest_files if kind == "xtest" else test_files).append(path.name)
      else:
        kind = "go"
        go_files.append(path.name)
        name = name or pkg_name
      imports[kind].extend(spec.import_path for spec in tree.imports)
    if not (go_files or test_files or xtest_files):
      raise ImportResolutionError(import_path, importer=str(directory), reason="no buildable Go source files for")
    if not name:
      name = self.load_file(directory / (test_files or xtest_files)[0]).tree.package.name.removesuffix("_test")

    def unique(values: List[str]) -> Tuple[str, ...]:
      return tuple(sorted(set(values)))

    return GoPackage(
      import_path=import_path,
      dir=directory,
      name=name,
      go_files=tuple(go_files),
      test_go_files=tuple(test_files),
      xtest_go_files=tuple(xtest_files),
      imports=unique(imports["go"]),
      test_imports=unique(imports["test"]),
      xtest_imports=unique(imports["xtest"]),
    )


def guess_base_path(loader: PackageLoader, import_path: str, src_dir: Optional[Path] = None) -> str:
  """
  Guesses the import-path prefix that delimits "our" code.

  A ``go.mod`` module path wins; known hosting sites yield
  ``host/user/repo``; otherwise walk upward while the parent path still
  resolves to a directory.

  Args:
      loader: Loader used to probe parent paths.
      import_path: Import path of the root package.
      src_dir: Directory of the root package.

  Returns:
      str: The base path.
  """
  if src_dir is not None:
    module = find_module(src_dir)
    if module is not None and (import_path == module[1] or import_path.startswith(module[1] + "/")):
      return module[1]
  parts = import_path.split("/")
  if parts[0] in KNOWN_HOSTS and len(parts) >= 3:
    return "/".join(parts[:3])
  probe_dir = src_dir or Path.cwd()
  current = import_path
  while "/" in current:
    parent = posixpath.dirname(current)
    if not loader.exists(parent, probe_dir):
      return current
    current = parent
  return current
