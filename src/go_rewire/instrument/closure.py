"""
Package Closure Instrumenter.

Starting from a root package, follows every *relevant* import, instruments
each reached package exactly once, and lays the results out as a
self-contained tree that builds with relative imports:

- the root package at the output root;
- packages reached through local imports under
  ``locals/<path relative to the root dir>`` (``..`` written as ``__``);
- every other package under ``gopath/<import path>``.

Inside each written file, relevant imports are rewritten to
``"./<relative path>"`` from the file's new location to the dependency's.

The closure is computed with an explicit worklist keyed by real directory
(so diamonds and cycles terminate), dependencies are rendered before
dependents, and the whole output is planned in memory before anything is
written.
"""

import logging
import os
import posixpath
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from go_rewire.core.patch import Replace
from go_rewire.instrument.packages import GoPackage, PackageLoader, guess_base_path, is_local_import
from go_rewire.passes.base import PassFunction
from go_rewire.utils.console import log_info

logger = logging.getLogger(__name__)

TEMP_PREFIX = "go-rewire-"


def has_path_prefix(path: str, prefix: str) -> bool:
  """True if ``prefix`` equals ``path`` or is a leading run of its ``/`` segments."""
  if not prefix:
    return False
  return path == prefix or path.startswith(prefix.rstrip("/") + "/")


@dataclass
class _Unit:
  """One package of the closure and where its files go."""

  inst: "Instrumentable"
  location: str
  with_tests: bool
  key: Path


@dataclass
class _Closure:
  units: List[_Unit] = field(default_factory=list)
  locations: Dict[Path, str] = field(default_factory=dict)
  edges: Dict[Tuple[Path, str], Path] = field(default_factory=dict)


class Instrumentable:
  """
  A root package together with the rule deciding which imports are instrumented.

  Build one with ``import_package``, ``import_dir`` or ``import_files``.

  Attributes:
      package: The loaded package.
      base_path: Import-path prefix of relevant packages, ``"*"`` for all, or ``""``.
      loader: The package loader shared by the whole closure.
  """

  def __init__(self, package: GoPackage, base_path: str, loader: PackageLoader):
    self.package = package
    self.base_path = base_path
    self.loader = loader

  @classmethod
  def import_package(
    cls,
    base_path: Optional[str],
    import_path: str,
    loader: Optional[PackageLoader] = None,
    src_dir: Optional[Path] = None,
  ) -> "Instrumentable":
    """
    Loads a package by import path.

    Args:
        base_path: Relevance base; None guesses it from the import path.
        import_path: The package to instrument.
        loader: Package loader (a default one is created).
        src_dir: Directory to resolve from (defaults to the working directory).
    """
    loader = loader or PackageLoader()
    src_dir = src_dir or Path.cwd()
    package = loader.load_import(import_path, src_dir)
    if base_path is None:
      base_path = guess_base_path(loader, package.import_path, package.dir) if package.in_workspace else ""
    return cls(package, base_path, loader)

  @classmethod
  def import_dir(
    cls, base_path: Optional[str], directory: Path, loader: Optional[PackageLoader] = None
  ) -> "Instrumentable":
    """Loads the package in ``directory``; a None base is guessed when the dir has an import path."""
    loader = loader or PackageLoader()
    package = loader.load_dir(Path(directory))
    if base_path is None:
      base_path = guess_base_path(loader, package.import_path, package.dir) if package.in_workspace else ""
    return cls(package, base_path, loader)

  @classmethod
  def import_files(
    cls, base_path: Optional[str], *files: Path, loader: Optional[PackageLoader] = None
  ) -> "Instrumentable":
    """Treats explicit files (e.g. ``go run a.go b.go``) as a standalone package."""
    loader = loader or PackageLoader()
    package = loader.load_files([Path(f) for f in files])
    return cls(package, base_path or "", loader)

  @property
  def in_workspace(self) -> bool:
    return self.package.in_workspace

  def relevant_import(self, imp: str) -> bool:
    """
    Decides whether the package behind ``imp`` is instrumented too.

    Local imports always are: once the importing file moves, the original
    relative path no longer points anywhere.
    """
    if imp == "C":
      return False
    if self.base_path == "*" or is_local_import(imp):
      return True
    if self.in_workspace or self.base_path:
      return has_path_prefix(imp, self.base_path) or has_path_prefix(self.base_path, imp)
    return False

  def _dependency(self, imp: str) -> "Instrumentable":
    return Instrumentable(self.loader.load_import(imp, self.package.dir), self.base_path, self.loader)

  def _imports(self, with_tests: bool) -> List[str]:
    pkg = self.package
    if not with_tests:
      return list(pkg.imports)
    return sorted(set(pkg.imports) | set(pkg.test_imports) | set(pkg.xtest_imports))

  # --- closure ---

  def _location(self, dep: GoPackage, imp: str, root_dir: Path) -> str:
    if is_local_import(imp) or not dep.in_workspace:
      rel = Path(os.path.relpath(dep.dir, root_dir)).as_posix()
      return posixpath.join("locals", "/".join("__" if part == ".." else part for part in rel.split("/")))
    return posixpath.join("gopath", dep.import_path)

  def closure(self, with_tests: bool) -> _Closure:
    """
    Computes the relevant import closure in dependency order.

    Raises:
        ImportResolutionError: If a relevant import cannot be resolved.
    """
    result = _Closure()
    root_key = self.package.dir.resolve()
    result.locations[root_key] = ""
    stack: List[Tuple[Instrumentable, str, bool, Path, Iterator[str]]] = [
      (self, "", with_tests, root_key, iter(self._imports(with_tests)))
    ]
    while stack:
      inst, location, tests, key, pending = stack[-1]
      imp = next(pending, None)
      if imp is None:
        stack.pop()
        result.units.append(_Unit(inst, location, tests, key))
        continue
      if not inst.relevant_import(imp) or imp == inst.package.import_path:
        continue
      dep = inst._dependency(imp)
      dep_key = dep.package.dir.resolve()
      result.edges[(key, imp)] = dep_key
      if dep_key in result.locations:
        continue
      dep_location = self._location(dep.package, imp, root_key)
      result.locations[dep_key] = dep_location
      logger.debug("closure: %s -> %s", imp, dep_location)
      stack.append((dep, dep_location, False, dep_key, iter(dep._imports(False))))
    return result

  # --- rendering ---

  def plan(self, with_tests: bool, pass_fn: PassFunction) -> List[Tuple[str, str]]:
    """
    Instruments the closure in memory.

    Returns:
        List[Tuple[str, str]]: (output-relative path, content) in write order.

    Raises:
        ImportResolutionError: Unresolvable relevant import.
        GoSyntaxError: A file in the closure does not parse.
    """
    closure = self.closure(with_tests)
    outputs: List[Tuple[str, str]] = []
    for unit in closure.units:
      pkg = unit.inst.package
      files = pkg.test_files() + pkg.xtest_files() if unit.with_tests else pkg.files()
      log_info(f"Instrumenting {pkg.import_path if pkg.in_workspace else pkg.dir} ({len(files)} files)")
      for path in files:
        file = self.loader.load_file(path)
        patches = pass_fn(file)
        for spec in file.tree.imports:
          imp = spec.import_path
          if imp == pkg.import_path:
            patches.add(Replace(spec.path, text='"."'))
            continue
          target = closure.edges.get((unit.key, imp))
          if target is None:
            continue
          if target == unit.key:
            rewritten = "."
          else:
            rewritten = "./" + posixpath.relpath(closure.locations[target] or ".", unit.location or ".")
          patches.add(Replace(spec.path, text=f'"{rewritten}"'))
        outputs.append((posixpath.join(unit.location, path.name), file.render(patches)))
    return outputs

  def instrument_to(self, with_tests: bool, outdir: Path, pass_fn: PassFunction) -> List[Path]:
    """
    Instruments the closure into ``outdir``.

    Nothing is written unless every package parses and resolves.

    Returns:
        List[Path]: The written files.
    """
    outputs = self.plan(with_tests, pass_fn)
    outdir = Path(outdir)
    written: List[Path] = []
    for rel, content in outputs:
      target = outdir / rel
      target.parent.mkdir(parents=True, exist_ok=True)
      with open(target, "w", encoding="utf-8") as f:
        f.write(content)
      written.append(target)
    return written

  def instrument(self, with_tests: bool, pass_fn: PassFunction) -> Path:
    """
    Instruments the closure into a fresh temporary directory.

    The directory is removed again if instrumentation fails.

    Returns:
        Path: The output root.
    """
    outdir = Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
    try:
      self.instrument_to(with_tests, outdir, pass_fn)
    except BaseException:
      shutil.rmtree(outdir, ignore_errors=True)
      raise
    return outdir
