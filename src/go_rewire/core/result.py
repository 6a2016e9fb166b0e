"""
Result model of a single-source instrumentation run.
"""

from typing import List

from pydantic import BaseModel, Field


class InstrumentResult(BaseModel):
  """
  Output of ``InstrumentEngine.run``.
  """

  code: str = Field(default="", description="The instrumented source.")
  diagnostics: List[str] = Field(default_factory=list, description="Pass-usage messages (file:line:col: ...).")
  errors: List[str] = Field(default_factory=list, description="Fatal errors; the code is then the original source.")
  patch_count: int = Field(default=0, description="Number of accepted patches.")
  success: bool = Field(default=True, description="False if the run aborted.")

  @property
  def has_diagnostics(self) -> bool:
    return len(self.diagnostics) > 0
