"""
go-rewire Package.

A source-to-source instrumentation toolkit for Go. Registered passes rewrite
``.go`` files through non-overlapping text patches computed during a
scope-aware walk, and the rewrite is extended across the relevant import
closure into a self-contained tree the ``go`` tool can build.

Usage
-----

Single Source
^^^^^^^^^^^^^

.. code-block:: python

    import go_rewire as gr
    src = "package main\\nfunc main() { f := must(os.Open(\\"x\\")); _ = f }\\n"
    print(gr.instrument_source(src, passes=["must"]))

Package Closure
^^^^^^^^^^^^^^^

.. code-block:: python

    from pathlib import Path

    from go_rewire import Instrumentable, RuntimeConfig
    from go_rewire.core.engine import build_passes
    from go_rewire.passes import combine_passes

    config = RuntimeConfig(passes=["must", "unused"])
    root = Instrumentable.import_dir(None, Path("cmd/tool"))
    outdir = root.instrument(False, combine_passes(build_passes(config)))
"""

from typing import Any, Dict, List, Optional

from go_rewire.config import RuntimeConfig
from go_rewire.core.engine import InstrumentEngine
from go_rewire.core.result import InstrumentResult
from go_rewire.instrument import GoCmd, Instrumentable

__version__ = "0.1.0"


def instrument_source(
  code: str,
  passes: Optional[List[str]] = None,
  pass_settings: Optional[Dict[str, Any]] = None,
  filename: str = "<input>",
) -> str:
  """
  Instruments one Go source string.

  Args:
      code: The source.
      passes: Pass names (default: every default pass).
      pass_settings: Settings for the passes (e.g. ``{"must_keyword": "check"}``).
      filename: Name used in diagnostics.

  Returns:
      str: The instrumented source.

  Raises:
      ValueError: If the source does not parse.
  """
  values: Dict[str, Any] = {"pass_settings": pass_settings or {}}
  if passes is not None:
    values["passes"] = passes
  result = InstrumentEngine(config=RuntimeConfig(**values)).run(code, filename)
  if not result.success:
    raise ValueError(f"Instrumentation failed: {result.errors}")
  return result.code


__all__ = [
  "GoCmd",
  "InstrumentEngine",
  "InstrumentResult",
  "Instrumentable",
  "RuntimeConfig",
  "instrument_source",
  "__version__",
]
