"""
Logging and Console Output.

All diagnostics go through the standard ``logging`` module and are rendered
by a ``rich`` handler attached to the root logger. The console sits behind a
proxy so tests (or an embedding tool) can swap the destination with
``set_console`` while modules keep importing the same ``console`` object.

The default console writes to stderr: the toolchain verbs forward the
compiled program's own stdout untouched.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Between INFO and WARNING
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "info": "dim cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "bold blue",
    "code": "bold magenta",
  }
)


def _default_console() -> Console:
  return Console(theme=_THEME, stderr=True)


class _ConsoleProxy:
  """
  Forwards to a replaceable ``rich.console.Console`` backend.

  Replacing the backend also re-targets the logging handler.
  """

  def __init__(self) -> None:
    self._backend: Console = _default_console()
    self._configure_logging()

  def set_backend(self, new_console: Console) -> None:
    self._backend = new_console
    self._configure_logging()

  def reset(self) -> None:
    self._backend = _default_console()
    self._configure_logging()

  @property
  def backend(self) -> Console:
    return self._backend

  def _configure_logging(self) -> None:
    """Replaces any RichHandler on the root logger with one bound to the current backend."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
      if isinstance(handler, RichHandler):
        root_logger.removeHandler(handler)

    rich_handler = RichHandler(
      console=self._backend,
      show_time=False,
      omit_repeated_times=False,
      show_path=False,
      markup=False,
      rich_tracebacks=True,
    )
    root_logger.setLevel(logging.INFO)
    root_logger.addHandler(rich_handler)

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def export_text(self, **kwargs: Any) -> str:
    """Returns recorded output (requires a console created with ``record=True``)."""
    return self._backend.export_text(**kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  """
  Redirects console output and logging to ``new_console``.

  Args:
      new_console: The Rich console to use globally.
  """
  console.set_backend(new_console)


def reset_console() -> None:
  """Restores the default stderr console."""
  console.reset()


def get_console() -> Console:
  return console.backend


def set_verbose(verbose: bool) -> None:
  """Lowers the root log level to DEBUG (rejected patches, resolution steps)."""
  logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)


def log_info(msg: str) -> None:
  logging.info(msg)


def log_success(msg: str) -> None:
  logging.log(SUCCESS_LEVEL_NUM, msg)


def log_warning(msg: str) -> None:
  logging.warning(msg)


def log_error(msg: str) -> None:
  logging.error(msg)
