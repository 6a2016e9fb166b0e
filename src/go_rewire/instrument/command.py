"""
Toolchain Command Model.

``GoCmd`` is a parsed ``go build|run|test`` invocation. It knows which
package the invocation targets, and can be *retargeted* to build the
instrumented copy of that package from another directory while keeping the
output where the original command would have put it.
"""

import os
import subprocess
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from go_rewire.errors import ConfigurationError
from go_rewire.instrument.closure import Instrumentable
from go_rewire.instrument.packages import GoPackage, PackageLoader, is_local_import

COMMANDS = ("build", "run", "test")

_BOOL_FLAGS = {"x", "v", "n", "a", "work", "race"}
_VALUE_FLAGS = {"p", "compiler", "gccgoflags", "gcflags", "ldflags", "tags"}
_COMMAND_BOOL_FLAGS = {"build": set(), "run": set(), "test": {"i", "c"}}
_COMMAND_VALUE_FLAGS = {"build": {"o"}, "run": set(), "test": set()}


def _is_go_file(param: str) -> bool:
  return param.endswith(".go")


@dataclass
class GoCmd:
  """
  A serialized ``go`` tool invocation.

  Example:
      ``go test -v ./pkg -run TestA`` parses to command ``test``, build flags
      ``{"v": "true"}``, params ``["./pkg"]`` and extra flags ``["-run", "TestA"]``.
  """

  workdir: Path
  executable: str
  command: str
  build_flags: Dict[str, str] = field(default_factory=dict)
  params: List[str] = field(default_factory=list)
  extra_flags: List[str] = field(default_factory=list)
  env: Dict[str, str] = field(default_factory=dict)

  @classmethod
  def parse(cls, workdir: Path, args: Sequence[str]) -> "GoCmd":
    """
    Parses ``[executable, command, flags..., params..., extra...]``.

    Flag scanning stops at the first argument that is not a known flag.

    Raises:
        ConfigurationError: For unsupported commands or malformed flags.
    """
    if len(args) < 2:
      raise ConfigurationError("GoCmd needs at least two arguments (e.g. go build)")
    executable, command = args[0], args[1]
    if command not in COMMANDS:
      raise ConfigurationError(f"Unsupported go command '{command}': only build, run and test are supported")
    bool_flags = _BOOL_FLAGS | _COMMAND_BOOL_FLAGS[command]
    value_flags = _VALUE_FLAGS | _COMMAND_VALUE_FLAGS[command]

    flags: Dict[str, str] = {}
    rest = list(args[2:])
    i = 0
    while i < len(rest):
      arg = rest[i]
      if arg == "--":
        i += 1
        break
      if not arg.startswith("-") or arg == "-":
        break
      name, eq, value = arg.lstrip("-").partition("=")
      if name in bool_flags:
        flags[name] = value if eq else "true"
      elif name in value_flags:
        if not eq:
          i += 1
          if i >= len(rest):
            raise ConfigurationError(f"flag needs an argument: -{name}")
          value = rest[i]
        flags[name] = value
      elif command == "test":
        break
      else:
        raise ConfigurationError(f"flag provided but not defined: -{name}")
      i += 1
    rest = rest[i:]

    params: List[str] = []
    for param in rest:
      if command == "run" and not _is_go_file(param):
        break
      if command == "test" and param.startswith("-"):
        break
      params.append(param)
    return cls(Path(workdir), executable, command, flags, params, rest[len(params) :])

  def args(self) -> List[str]:
    result = [self.command]
    result.extend(f"-{k}={v}" for k, v in self.build_flags.items())
    result.extend(self.params)
    result.extend(self.extra_flags)
    return result

  def __str__(self) -> str:
    return " ".join([self.executable, *self.args()])

  # --- target package ---

  def _files_mode(self) -> bool:
    return bool(self.params) and all(_is_go_file(p) for p in self.params)

  def target_package(self, loader: PackageLoader) -> GoPackage:
    """The package the command compiles (one package at most)."""
    if len(self.params) > 1 and not self._files_mode():
      raise ConfigurationError("No support for more than a single package")
    if self._files_mode():
      return loader.load_files([self.workdir / p for p in self.params])
    if not self.params:
      return loader.load_dir(self.workdir)
    return loader.load_import(self.params[0], self.workdir)

  def output_file_name(self, loader: Optional[PackageLoader] = None) -> str:
    """
    Infers the executable name ``go build`` would produce.

    Raises:
        ConfigurationError: More than one package, or the package is not ``main``.
    """
    pkg = self.target_package(loader or PackageLoader())
    if pkg.name != "main":
      raise ConfigurationError(
        f"package {pkg.name} is not a main package: go-rewire builds executables and runs tests, not libraries"
      )
    if self._files_mode():
      return Path(self.params[0]).stem
    return pkg.dir.resolve().name

  def instrumentable(self, base_path: Optional[str], loader: PackageLoader) -> Instrumentable:
    """The root of the closure this command needs instrumented."""
    if self._files_mode():
      return Instrumentable.import_files(base_path, *[self.workdir / p for p in self.params], loader=loader)
    if len(self.params) > 1:
      raise ConfigurationError("No support for more than a single package")
    if not self.params:
      return Instrumentable.import_dir(base_path, self.workdir, loader=loader)
    param = self.params[0]
    if is_local_import(param):
      return Instrumentable.import_dir(base_path, self.workdir / param, loader=loader)
    return Instrumentable.import_package(base_path, param, loader=loader, src_dir=self.workdir)

  def retarget(self, newdir: Path, loader: Optional[PackageLoader] = None) -> "GoCmd":
    """
    Returns the command that builds the instrumented tree at ``newdir``.

    The root package lives at ``newdir`` itself, so a package parameter is
    dropped and ``run`` files are reduced to base names. For ``build``, ``-o``
    keeps pointing at the original output location. Relative imports require
    GOPATH mode, hence ``GO111MODULE=off``.

    Raises:
        ConfigurationError: If the ``build`` output name cannot be inferred.
    """
    newdir = Path(newdir)
    flags = dict(self.build_flags)
    params = list(self.params)
    if self.command == "build":
      output = flags.get("o") or self.output_file_name(loader)
      if not os.path.isabs(output):
        output = os.path.join(os.path.relpath(self.workdir.resolve(), newdir.resolve()), output)
      flags["o"] = output
    if self._files_mode():
      params = [Path(p).name for p in params]
    elif self.command in ("build", "test") and len(params) == 1:
      params = []
    return replace(
      self,
      workdir=newdir,
      build_flags=flags,
      params=params,
      env={**self.env, "GO111MODULE": "off"},
    )

  def run(self) -> int:
    """Runs the command with inherited stdin/stdout/stderr; returns its exit code."""
    completed = subprocess.run(
      [self.executable, *self.args()],
      cwd=self.workdir,
      env={**os.environ, **self.env},
    )
    return completed.returncode
