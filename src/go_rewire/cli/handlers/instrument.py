"""
Instrument Command Handler.

Writes the instrumented closure of one package to an output directory
without invoking the toolchain.
"""

from pathlib import Path
from typing import Optional

from go_rewire.config import RuntimeConfig
from go_rewire.core.engine import build_passes
from go_rewire.instrument.closure import Instrumentable
from go_rewire.instrument.packages import PackageLoader
from go_rewire.passes.base import combine_passes
from go_rewire.utils.console import log_info, log_success, log_warning


def handle_instrument(directory: Path, config: RuntimeConfig) -> int:
  """
  Instruments the package in ``directory`` and everything it relevantly imports.

  Args:
      directory: The root package directory.
      config: Runtime configuration (output dir, passes, base path, tests).

  Returns:
      int: Exit code.
  """
  loader = PackageLoader(config.resolved_gopath(), config.resolved_goroot())
  root = Instrumentable.import_dir(config.base_path, directory, loader=loader)
  passes = build_passes(config)
  pass_fn = combine_passes(passes)
  log_info(f"Relevance base: '{root.base_path or '<local imports>'}'")

  outdir: Optional[Path] = config.output_dir
  if outdir is None:
    outdir = root.instrument(config.with_tests, pass_fn)
    count = sum(1 for _ in outdir.rglob("*.go"))
  else:
    count = len(root.instrument_to(config.with_tests, outdir, pass_fn))

  for p in passes:
    for diagnostic in p.diagnostics:
      log_warning(f"[{p.name}] {diagnostic}")
  log_success(f"Wrote {count} files to {outdir}")
  return 0
