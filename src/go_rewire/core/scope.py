"""
Lexical Scope Tree.

A ``Scope`` is one binding table in a chain that mirrors the block nesting of
the walked source. Each scope points to its outer scope and to the syntax node
that owns it. Scopes opened by a ``:=`` statement are *continuations* of the
enclosing block: they share the block's owner and are closed together with it.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from go_rewire.syntax import nodes as ast

_VERSION_SUFFIX = re.compile(r"^v[0-9]+$")


class BindingKind(str, Enum):
  VALUE = "value"
  CONST = "const"
  FUNC = "func"
  TYPE = "type"
  IMPORT = "import"


@dataclass(eq=False)
class Binding:
  """
  A declared name.

  Attributes:
      name: The bound name.
      kind: What the name denotes.
      ident: The declaring identifier, or the ImportSpec for imports.
      owner: The declaring statement, spec or declaration.
      param: True for receivers, type parameters and parameters.
      result: True for named results.
      used: Set once another identifier resolves to this binding.
  """

  name: str
  kind: BindingKind
  ident: ast.Node
  owner: Optional[ast.Node] = None
  param: bool = False
  result: bool = False
  used: bool = False


def import_name(spec: ast.ImportSpec) -> str:
  """
  Returns the local package name an import introduces.

  The explicit alias wins. Otherwise the last path element is used, skipping a
  trailing major-version element (``example.com/mod/v2``) and stripping a
  ``.vN`` suffix (``gopkg.in/yaml.v3``).

  Args:
      spec: The import spec.

  Returns:
      str: The binding name.
  """
  if spec.name is not None:
    return spec.name.name
  parts = [p for p in spec.import_path.split("/") if p]
  if len(parts) > 1 and _VERSION_SUFFIX.match(parts[-1]):
    parts.pop()
  last = parts[-1] if parts else spec.import_path
  match = re.match(r"^(.*)\.v[0-9]+$", last)
  if match:
    last = match.group(1)
  return last.replace("-", "_")


@dataclass(eq=False)
class Scope:
  """
  One binding table in the scope chain.

  Attributes:
      outer: The enclosing scope (None for the universe).
      node: The node that owns this scope.
      continuation: True for scopes opened by ``:=`` inside a block.
  """

  outer: Optional["Scope"]
  node: Optional[ast.Node]
  continuation: bool = False
  bindings: Dict[str, Binding] = field(default_factory=dict)
  order: List[Binding] = field(default_factory=list)

  def new_scope(self, node: ast.Node) -> "Scope":
    """Opens a nested scope owned by ``node``."""
    return Scope(outer=self, node=node)

  def continue_scope(self) -> "Scope":
    """Opens a continuation scope sharing this scope's owner."""
    return Scope(outer=self, node=self.node, continuation=True)

  def insert(self, binding: Binding) -> Optional[Binding]:
    """
    Declares a binding in this scope.

    The blank identifier and functions named ``init`` are never inserted.

    Args:
        binding: The binding to declare.

    Returns:
        Optional[Binding]: The inserted binding, or None if it was skipped.
    """
    if binding.name == "_":
      return None
    if binding.kind is BindingKind.FUNC and binding.name == "init":
      return None
    self.bindings[binding.name] = binding
    self.order.append(binding)
    return binding

  def lookup(self, name: str) -> Optional[Binding]:
    """Finds the innermost binding for ``name``."""
    scope: Optional[Scope] = self
    while scope is not None:
      found = scope.bindings.get(name)
      if found is not None:
        return found
      scope = scope.outer
    return None

  def lookup_local_block(self, name: str) -> Optional[Binding]:
    """Finds ``name`` in this block only: this scope and the continuations it extends."""
    scope: Optional[Scope] = self
    while scope is not None:
      found = scope.bindings.get(name)
      if found is not None:
        return found
      if not scope.continuation:
        return None
      scope = scope.outer
    return None

  def declared(self) -> Iterator[Binding]:
    """Bindings of this scope in declaration order (later redeclarations win)."""
    for binding in self.order:
      if self.bindings.get(binding.name) is binding:
        yield binding

  def depth(self) -> int:
    count = 0
    scope = self.outer
    while scope is not None:
      count += 1
      scope = scope.outer
    return count
