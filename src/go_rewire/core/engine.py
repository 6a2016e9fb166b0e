"""
Instrumentation Engine.

Drives the configured passes over one source text:

1.  **Parse** the source into a ``PatchableFile``.
2.  **Walk** the tree once with every pass composed into a single visitor.
3.  **Render** the merged patch set over the original text.

Package-level work (import closure, output layout) lives in
``go_rewire.instrument``; this engine is the per-file unit it builds on and
the entry point for programmatic use.
"""

from pathlib import Path
from typing import List, Optional, Union

from go_rewire.config import RuntimeConfig
from go_rewire.core.patch import PatchableFile
from go_rewire.core.result import InstrumentResult
from go_rewire.errors import GoSyntaxError
from go_rewire.passes import InstrumentationPass, PassFunction, combine_passes, require_pass


def build_passes(config: RuntimeConfig) -> List[InstrumentationPass]:
  """Instantiates the configured passes with their validated settings."""
  passes: List[InstrumentationPass] = []
  for name in config.passes:
    cls = require_pass(name)
    settings = config.parse_pass_settings(cls.settings_model) if cls.settings_model else None
    passes.append(cls(settings))
  return passes


class InstrumentEngine:
  """
  Runs instrumentation passes over single files.

  One engine owns one set of pass instances, so temporary names stay unique
  across every file it processes.
  """

  def __init__(
    self,
    config: Optional[RuntimeConfig] = None,
    passes: Optional[List[InstrumentationPass]] = None,
  ):
    """
    Args:
        config: Runtime configuration; loaded from pyproject.toml when omitted.
        passes: Explicit pass instances, overriding ``config.passes``.
    """
    self.config = config or RuntimeConfig.load()
    self.passes = passes if passes is not None else build_passes(self.config)
    self.pass_fn: PassFunction = combine_passes(self.passes)

  def diagnostics(self) -> List[str]:
    return [str(d) for p in self.passes for d in p.diagnostics]

  def run(self, code: Union[str, bytes], filename: Union[str, Path] = "<input>") -> InstrumentResult:
    """
    Instruments one source text.

    Syntax errors are reported in the result rather than raised; the code is
    then returned unchanged.

    Args:
        code: Go source.
        filename: Name used in diagnostics.

    Returns:
        InstrumentResult: Rendered code plus diagnostics.
    """
    before = len(self.diagnostics())
    try:
      file = PatchableFile.parse(filename, code)
    except GoSyntaxError as e:
      text = code.decode("utf-8") if isinstance(code, bytes) else code
      return InstrumentResult(code=text, errors=[str(e)], success=False)
    patches = self.pass_fn(file)
    return InstrumentResult(
      code=file.render(patches),
      diagnostics=self.diagnostics()[before:],
      patch_count=len(patches),
    )

  def run_file(self, path: Union[str, Path]) -> InstrumentResult:
    path = Path(path)
    return self.run(path.read_bytes(), path)
