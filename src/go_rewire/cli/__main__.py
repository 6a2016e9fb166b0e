"""
Main Entry Point for the go-rewire CLI.

Parses arguments and dispatches to the handlers in ``go_rewire.cli.commands``.
Every ``RewireError`` is reported as a logged error with exit status 1.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from go_rewire import __version__
from go_rewire.cli import commands
from go_rewire.config import RuntimeConfig, parse_cli_key_values
from go_rewire.errors import RewireError
from go_rewire.utils.console import log_error, set_verbose


def _add_run_options(cmd: argparse.ArgumentParser) -> None:
  cmd.add_argument("--base", default=None, help="Import path prefix to instrument ('*' for every import)")
  cmd.add_argument("--passes", nargs="+", default=None, help="Passes to run, in precedence order (default: from toml)")
  cmd.add_argument(
    "--config",
    nargs="*",
    help="Pass settings in key=value format (e.g. must_keyword=check fix=false)",
  )
  cmd.add_argument("--out", type=Path, default=None, help="Write the instrumented tree here")


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code; for the toolchain verbs, the toolchain's own.
  """
  parser = argparse.ArgumentParser(prog="go-rewire", description="go-rewire: source-to-source Go instrumentation")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: UNUSED ---
  cmd_unused = subparsers.add_parser("unused", help="List unused bindings and imports in Go files")
  cmd_unused.add_argument("files", nargs="+", type=Path, help="Go source files")

  # --- Command: INSTRUMENT ---
  cmd_inst = subparsers.add_parser("instrument", help="Write the instrumented closure of a package")
  cmd_inst.add_argument("path", nargs="?", type=Path, default=Path("."), help="Package directory (default: .)")
  cmd_inst.add_argument("--tests", action="store_true", default=None, help="Also instrument the package's tests")
  _add_run_options(cmd_inst)

  # --- Commands: BUILD / RUN / TEST ---
  for verb in ("build", "run", "test"):
    cmd_go = subparsers.add_parser(verb, help=f"Instrument, then 'go {verb}' the result")
    _add_run_options(cmd_go)
    cmd_go.add_argument("--keep", action="store_true", default=None, help="Keep the temporary instrumented tree")
    cmd_go.add_argument("args", nargs=argparse.REMAINDER, help=f"Arguments for 'go {verb}'")

  args = parser.parse_args(argv)
  set_verbose(args.verbose)

  try:
    if args.command == "unused":
      return commands.handle_unused(args.files)

    config = RuntimeConfig.load(
      base_path=args.base,
      passes=args.passes,
      with_tests=getattr(args, "tests", None),
      output_dir=args.out,
      keep_output=getattr(args, "keep", None),
      pass_settings=parse_cli_key_values(args.config),
    )

    if args.command == "instrument":
      return commands.handle_instrument(args.path, config)

    return commands.handle_toolchain(args.command, args.args, config)
  except RewireError as e:
    log_error(str(e))
    return 1


if __name__ == "__main__":
  sys.exit(main())
