"""
Go Syntax Tree Node Model.

This module defines the node classes the walker and the passes operate on.
The shape follows the Go reference AST closely (files, declarations,
statements, expressions and types), but every node is a plain dataclass that
records the byte range it occupies in the *original* source file.

Offsets are byte offsets into the UTF-8 encoded source. They are the only
addressing scheme the Patch Engine understands, so nodes never carry
line/column information; use ``PatchableFile.position`` to translate.

Nodes compare by identity. Passes routinely key dictionaries by node, and two
structurally equal identifiers at different positions are different nodes.
"""

from dataclasses import dataclass, field
from typing import List, Optional


def _node(cls):
  """Declares a syntax node dataclass (identity equality, keyword-only fields)."""
  return dataclass(eq=False, kw_only=True)(cls)


@_node
class Node:
  """Base class of all syntax nodes."""

  start: int
  """Byte offset of the first byte of the node."""

  end: int
  """Byte offset one past the last byte of the node."""


@_node
class Expr(Node):
  """Base class for expressions and type expressions."""


@_node
class Stmt(Node):
  """Base class for statements."""


@_node
class Decl(Node):
  """Base class for top-level and statement-level declarations."""


@_node
class Spec(Node):
  """Base class for the specs grouped by a ``GenDecl``."""


# --- Expressions ---


@_node
class Ident(Expr):
  """
  A name that can resolve to a binding.

  Covers plain identifiers, type names and package names. Field names,
  method names and labels use ``FieldName`` instead because they never
  resolve through lexical scope.
  """

  name: str

  @property
  def is_blank(self) -> bool:
    """True for the blank identifier ``_``."""
    return self.name == "_"


@_node
class FieldName(Expr):
  """A selector, struct field, interface method or label name."""

  name: str


@_node
class BasicLit(Expr):
  """Literal of a basic type, or one of the predeclared constants (true, nil, iota...)."""

  kind: str
  value: str


@_node
class CompositeLit(Expr):
  """``T{a, b: c}``. ``type`` is None for elided inner literals."""

  type: Optional[Expr]
  elts: List[Expr] = field(default_factory=list)
  lbrace: int = 0


@_node
class KeyValueExpr(Expr):
  key: Expr
  value: Expr


@_node
class ParenExpr(Expr):
  x: Expr


@_node
class SelectorExpr(Expr):
  x: Expr
  sel: FieldName


@_node
class IndexExpr(Expr):
  """Index expression or generic instantiation (several indices)."""

  x: Expr
  indices: List[Expr] = field(default_factory=list)


@_node
class SliceExpr(Expr):
  x: Expr
  low: Optional[Expr] = None
  high: Optional[Expr] = None
  max: Optional[Expr] = None


@_node
class TypeAssertExpr(Expr):
  """``x.(T)``; ``type`` is None for the ``x.(type)`` of a type switch."""

  x: Expr
  type: Optional[Expr] = None


@_node
class CallExpr(Expr):
  fun: Expr
  args: List[Expr] = field(default_factory=list)
  type_args: List[Expr] = field(default_factory=list)
  ellipsis: bool = False


@_node
class StarExpr(Expr):
  """Dereference or pointer type."""

  x: Expr


@_node
class UnaryExpr(Expr):
  op: str
  x: Expr


@_node
class BinaryExpr(Expr):
  op: str
  x: Expr
  y: Expr


@_node
class Ellipsis(Expr):
  """``...T`` in a variadic parameter, or the ``...`` length of ``[...]T``."""

  elt: Optional[Expr] = None


@_node
class BadExpr(Expr):
  """An expression kind the adapter has no dedicated node for; its sub-expressions are kept."""

  kind: str
  children: List[Expr] = field(default_factory=list)


# --- Types ---


@_node
class Field(Node):
  """
  One entry of a parameter list, struct, or interface.

  ``names`` holds ``Ident`` nodes for parameters and ``FieldName`` nodes for
  struct fields and interface methods.
  """

  names: List[Expr] = field(default_factory=list)
  type: Optional[Expr] = None
  tag: Optional[BasicLit] = None


@_node
class FieldList(Node):
  list: List[Field] = field(default_factory=list)

  def names(self) -> List[Expr]:
    """All names declared by the list, in order."""
    return [name for f in self.list for name in f.names]


@_node
class ArrayType(Expr):
  """Array (``len`` set) or slice (``len`` None) type."""

  len: Optional[Expr]
  elt: Expr


@_node
class MapType(Expr):
  key: Expr
  value: Expr


@_node
class ChanType(Expr):
  dir: str
  value: Expr


@_node
class FuncType(Expr):
  params: FieldList
  results: Optional[FieldList] = None
  type_params: Optional[FieldList] = None


@_node
class StructType(Expr):
  fields: FieldList


@_node
class InterfaceType(Expr):
  methods: FieldList


@_node
class FuncLit(Expr):
  type: FuncType
  body: "BlockStmt"


# --- Statements ---


@_node
class BlockStmt(Stmt):
  list: List[Stmt] = field(default_factory=list)
  lbrace: int = 0
  rbrace: int = 0


@_node
class EmptyStmt(Stmt):
  pass


@_node
class DeclStmt(Stmt):
  decl: "GenDecl"


@_node
class LabeledStmt(Stmt):
  label: str
  stmt: Stmt


@_node
class ExprStmt(Stmt):
  x: Expr


@_node
class SendStmt(Stmt):
  chan: Expr
  value: Expr


@_node
class IncDecStmt(Stmt):
  x: Expr
  tok: str


@_node
class AssignStmt(Stmt):
  """Assignment, op-assignment, or ``:=`` definition (``tok``)."""

  lhs: List[Expr]
  tok: str
  tok_pos: int
  rhs: List[Expr]

  @property
  def is_define(self) -> bool:
    return self.tok == ":="


@_node
class GoStmt(Stmt):
  call: Expr


@_node
class DeferStmt(Stmt):
  call: Expr


@_node
class ReturnStmt(Stmt):
  results: List[Expr] = field(default_factory=list)


@_node
class BranchStmt(Stmt):
  tok: str
  label: Optional[str] = None


@_node
class IfStmt(Stmt):
  init: Optional[Stmt]
  cond: Expr
  body: BlockStmt
  else_: Optional[Stmt] = None


@_node
class CaseClause(Stmt):
  """Case of an expression or type switch; ``list`` is None for ``default``."""

  list: Optional[List[Expr]]
  body: List[Stmt] = field(default_factory=list)
  colon: int = 0


@_node
class SwitchStmt(Stmt):
  init: Optional[Stmt]
  tag: Optional[Expr]
  body: BlockStmt


@_node
class TypeSwitchStmt(Stmt):
  """``assign`` is ``x := y.(type)`` (AssignStmt) or ``y.(type)`` (ExprStmt)."""

  init: Optional[Stmt]
  assign: Stmt
  body: BlockStmt


@_node
class CommClause(Stmt):
  """Case of a select statement; ``comm`` is None for ``default``."""

  comm: Optional[Stmt]
  body: List[Stmt] = field(default_factory=list)
  colon: int = 0


@_node
class SelectStmt(Stmt):
  body: BlockStmt


@_node
class ForStmt(Stmt):
  init: Optional[Stmt]
  cond: Optional[Expr]
  post: Optional[Stmt]
  body: BlockStmt


@_node
class RangeStmt(Stmt):
  """``tok`` is ``:=``, ``=`` or None (``for range x``)."""

  key: Optional[Expr]
  value: Optional[Expr]
  tok: Optional[str]
  x: Expr
  body: BlockStmt


# --- Declarations ---


@_node
class ImportSpec(Spec):
  """``name`` holds the alias, ``.`` or ``_`` when one is given."""

  name: Optional[Ident]
  path: BasicLit

  @property
  def import_path(self) -> str:
    """The import path with its quotes removed."""
    return self.path.value[1:-1]


@_node
class ValueSpec(Spec):
  names: List[Ident]
  type: Optional[Expr] = None
  values: List[Expr] = field(default_factory=list)


@_node
class TypeSpec(Spec):
  name: Ident
  type: Expr
  type_params: Optional[FieldList] = None
  alias: bool = False


@_node
class GenDecl(Decl):
  """``import``, ``const``, ``type`` or ``var`` declaration (``tok``)."""

  tok: str
  specs: List[Spec] = field(default_factory=list)


@_node
class FuncDecl(Decl):
  """Function or method (``recv`` set) declaration; ``body`` is None for external functions."""

  recv: Optional[FieldList]
  name: Ident
  type: FuncType
  body: Optional[BlockStmt] = None


@_node
class File(Node):
  """A parsed source file."""

  filename: str
  package: Ident
  decls: List[Decl] = field(default_factory=list)
  imports: List[ImportSpec] = field(default_factory=list)

  def find_func(self, name: str) -> Optional[FuncDecl]:
    """Returns the first plain (non-method) function declared with ``name``."""
    for decl in self.decls:
      if isinstance(decl, FuncDecl) and decl.recv is None and decl.name.name == name:
        return decl
    return None
