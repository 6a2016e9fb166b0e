"""
Pass Registry.

Instrumentation passes register themselves by name with the
``register_pass`` decorator. The registry is populated when
``go_rewire.passes`` is imported.
"""

from typing import Dict, List, Optional, Type

from go_rewire.errors import ConfigurationError

_PASSES: Dict[str, Type] = {}


def register_pass(name: str):
  """
  Decorator registering an ``InstrumentationPass`` subclass under ``name``.

  Args:
      name: The identifier used in configuration and on the command line.

  Returns:
      Callable: The class decorator.
  """

  def decorator(cls: Type) -> Type:
    cls.name = name
    _PASSES[name] = cls
    return cls

  return decorator


def get_pass(name: str) -> Optional[Type]:
  """Retrieves a registered pass class by name."""
  return _PASSES.get(name)


def require_pass(name: str) -> Type:
  """Like ``get_pass`` but raises ``ConfigurationError`` for unknown names."""
  cls = _PASSES.get(name)
  if cls is None:
    raise ConfigurationError(f"Unknown pass: '{name}'. Available passes: {available_passes()}")
  return cls


def available_passes() -> List[str]:
  """Names of all registered passes, in registration order."""
  return list(_PASSES)
