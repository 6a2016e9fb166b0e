"""
Toolchain Command Handler.

Implements ``go-rewire build|run|test``: instrument the target package's
closure, retarget the ``go`` invocation onto the instrumented tree, run it,
and hand back the toolchain's exit code.
"""

import shutil
from pathlib import Path
from typing import List, Optional

from go_rewire.config import RuntimeConfig
from go_rewire.core.engine import build_passes
from go_rewire.instrument.command import GoCmd
from go_rewire.instrument.packages import PackageLoader
from go_rewire.passes.base import combine_passes
from go_rewire.utils.console import log_info


def handle_toolchain(command: str, args: List[str], config: RuntimeConfig, workdir: Optional[Path] = None) -> int:
  """
  Runs ``go <command> <args>`` against the instrumented copy of the target.

  Args:
      command: ``build``, ``run`` or ``test``.
      args: Remaining toolchain arguments.
      config: Runtime configuration.
      workdir: Directory the command is issued from (defaults to cwd).

  Returns:
      int: The toolchain's exit code.
  """
  workdir = workdir or Path.cwd()
  cmd = GoCmd.parse(workdir, [config.go_executable, command, *args])
  loader = PackageLoader(config.resolved_gopath(), config.resolved_goroot())
  root = cmd.instrumentable(config.base_path, loader)
  pass_fn = combine_passes(build_passes(config))
  with_tests = config.with_tests or command == "test"

  if config.output_dir is not None:
    outdir = config.output_dir
    root.instrument_to(with_tests, outdir, pass_fn)
    cleanup = False
  else:
    outdir = root.instrument(with_tests, pass_fn)
    cleanup = not config.keep_output

  try:
    retargeted = cmd.retarget(outdir, loader)
    log_info(f"{retargeted} (in {outdir})")
    return retargeted.run()
  finally:
    if cleanup:
      shutil.rmtree(outdir, ignore_errors=True)
