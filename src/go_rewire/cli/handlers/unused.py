"""
Unused Command Handler.

Reports dead bindings and unused imports in individual Go files without
writing anything.
"""

from pathlib import Path
from typing import List

from rich.table import Table

from go_rewire.core.patch import PatchableFile, PatchSet
from go_rewire.core.walker import walk_file
from go_rewire.errors import GoSyntaxError
from go_rewire.passes.unused import CollectingReporter, UnusedPass, UnusedSettings
from go_rewire.utils.console import console, log_error, log_success


def handle_unused(paths: List[Path]) -> int:
  """
  Lists unused bindings per file.

  Args:
      paths: Go files to inspect.

  Returns:
      int: 0 on success, 1 if a file is missing or does not parse.
  """
  table = Table(title="Unused bindings")
  table.add_column("Location", style="bold blue")
  table.add_column("Name", style="bold magenta")

  status = 0
  found = 0
  for path in paths:
    if not path.is_file():
      log_error(f"File not found: {path}")
      status = 1
      continue
    try:
      file = PatchableFile.parse(path)
    except GoSyntaxError as e:
      log_error(str(e))
      status = 1
      continue
    reporter = CollectingReporter()
    unused = UnusedPass(UnusedSettings(fix=False), reporter=reporter)
    walk_file(unused.visitor(file, PatchSet()), file.tree)
    for location, name in zip(reporter.locations, reporter.names):
      table.add_row(location, name)
      found += 1

  if found:
    console.print(table)
  elif status == 0:
    log_success("No unused bindings.")
  return status
