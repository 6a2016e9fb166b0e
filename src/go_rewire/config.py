"""
Runtime Configuration Store.

Settings come from the ``[tool.go_rewire]`` table of the nearest
``pyproject.toml`` and are overridden by explicit (CLI) arguments.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from go_rewire.errors import ConfigurationError
from go_rewire.passes import available_passes

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib

T = TypeVar("T", bound=BaseModel)

DEFAULT_PASSES = ["must", "unused"]


class RuntimeConfig(BaseModel):
  """
  Configuration of one instrumentation run.
  """

  base_path: Optional[str] = Field(
    None, description="Import path prefix of packages to instrument ('*' for all). Guessed when unset."
  )
  passes: List[str] = Field(default_factory=lambda: list(DEFAULT_PASSES), description="Passes in precedence order.")
  with_tests: bool = Field(False, description="Also instrument the root package's test files.")
  output_dir: Optional[Path] = Field(None, description="Write the instrumented tree here instead of a temp dir.")
  keep_output: bool = Field(False, description="Keep the temporary output tree after the toolchain exits.")
  gopath: List[Path] = Field(default_factory=list, description="GOPATH entries (defaults to $GOPATH).")
  goroot: Optional[Path] = Field(None, description="Go installation root (defaults to $GOROOT).")
  go_executable: str = Field("go", description="Toolchain executable.")
  pass_settings: Dict[str, Any] = Field(default_factory=dict, description="Settings handed to the passes.")

  @field_validator("passes")
  @classmethod
  def validate_passes(cls, v: List[str]) -> List[str]:
    """
    Normalizes pass names and checks them against the registry.

    Raises:
        ValueError: If a pass is not registered.
    """
    cleaned = [name.strip().lower() for name in v if name.strip()]
    known = available_passes()
    for name in cleaned:
      if name not in known:
        raise ValueError(f"Unknown pass: '{name}'. Available passes: {known}")
    return cleaned

  def resolved_gopath(self) -> List[Path]:
    if self.gopath:
      return list(self.gopath)
    env = os.environ.get("GOPATH")
    if env:
      return [Path(p) for p in env.split(os.pathsep) if p]
    return [Path.home() / "go"]

  def resolved_goroot(self) -> Optional[Path]:
    if self.goroot is not None:
      return self.goroot
    env = os.environ.get("GOROOT")
    return Path(env) if env else None

  def parse_pass_settings(self, schema: Type[T]) -> T:
    """
    Validates ``pass_settings`` against a pass's pydantic model.

    Keys the model does not declare are ignored, since one settings table
    serves every pass.

    Raises:
        ConfigurationError: If validation fails.
    """
    relevant = {k: v for k, v in self.pass_settings.items() if k in schema.model_fields}
    try:
      return schema.model_validate(relevant)
    except ValidationError as e:
      raise ConfigurationError(f"Pass configuration validation failed: {e}")

  @classmethod
  def load(
    cls,
    base_path: Optional[str] = None,
    passes: Optional[List[str]] = None,
    with_tests: Optional[bool] = None,
    output_dir: Optional[Path] = None,
    keep_output: Optional[bool] = None,
    go_executable: Optional[str] = None,
    pass_settings: Optional[Dict[str, Any]] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads ``[tool.go_rewire]`` from pyproject.toml and applies overrides.

    Args:
        base_path: Override for the relevance base.
        passes: Override for the pass list.
        with_tests: Override for test instrumentation.
        output_dir: Override for the output directory.
        keep_output: Override for keeping temp output.
        go_executable: Override for the toolchain binary.
        pass_settings: CLI pass settings, merged over the file's.
        search_path: Directory to start searching for pyproject.toml.

    Returns:
        RuntimeConfig: The resolved configuration.

    Raises:
        ConfigurationError: If the merged values are invalid.
    """
    toml_config, toml_dir = _load_toml_settings(search_path or Path.cwd())

    def resolve_path(raw: Any) -> Path:
      path = Path(raw)
      return (toml_dir / path).resolve() if toml_dir and not path.is_absolute() else path

    final_output = output_dir
    if final_output is None and "output_dir" in toml_config:
      final_output = resolve_path(toml_config["output_dir"])

    goroot = toml_config.get("goroot")

    values = dict(
      base_path=base_path or toml_config.get("base_path"),
      passes=passes if passes is not None else toml_config.get("passes", list(DEFAULT_PASSES)),
      with_tests=with_tests if with_tests is not None else toml_config.get("with_tests", False),
      output_dir=final_output,
      keep_output=keep_output if keep_output is not None else toml_config.get("keep_output", False),
      gopath=[resolve_path(p) for p in toml_config.get("gopath", [])],
      goroot=resolve_path(goroot) if goroot else None,
      go_executable=go_executable or toml_config.get("go_executable", "go"),
      pass_settings={**toml_config.get("pass_settings", {}), **(pass_settings or {})},
    )
    try:
      return cls(**values)
    except ValidationError as e:
      raise ConfigurationError(str(e))


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Searches ``start_path`` and its parents for pyproject.toml.

  Returns:
      Tuple[Dict, Optional[Path]]: The ``[tool.go_rewire]`` table and the directory it was found in.
  """
  current = start_path.resolve()
  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.is_file():
      with open(toml_path, "rb") as f:
        try:
          data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
          raise ConfigurationError(f"Invalid {toml_path}: {e}")
      section = data.get("tool", {}).get("go_rewire")
      if section is not None:
        return section, parent
  return {}, None


def parse_cli_key_values(items: Optional[List[str]]) -> Dict[str, Any]:
  """
  Parses ``key=value`` strings into a dictionary.

  Values are typed as bool, int or float where they parse as such.

  Args:
      items: Raw strings from argparse.

  Returns:
      Dict[str, Any]: The parsed settings.

  Raises:
      ConfigurationError: For an item without ``=``.
  """
  config: Dict[str, Any] = {}
  for item in items or []:
    if "=" not in item:
      raise ConfigurationError(f"Invalid setting '{item}'. Expected 'key=value'.")
    key, val_str = (part.strip() for part in item.split("=", 1))
    value: Any = val_str
    if val_str.lower() in ("true", "false"):
      value = val_str.lower() == "true"
    else:
      try:
        value = int(val_str)
      except ValueError:
        try:
          value = float(val_str)
        except ValueError:
          pass
    config[key] = value
  return config
