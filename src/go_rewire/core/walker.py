"""
Scope Walker.

Depth-first traversal of a Go syntax tree that maintains the lexical scope
chain while it walks. Every expression, statement and declaration is offered
to a ``ScopeVisitor`` before its children; the value returned by the visit
(``None`` or a visitor) is used for the subtree. When a scope is left, the
visitor that opened it receives ``exit_scope``.

Scope-opening rules:

1.  Function declarations and literals open a scope holding the receiver,
    type parameters, parameters and named results. The body opens its own.
2.  Block statements, ``case``/``comm`` clauses, and ``if``/``for``/``switch``
    statements with an initializer each open a scope.
3.  A ``:=`` statement opens a *continuation* scope of the current block.
    Its right-hand side is walked first, in the enclosing scope.
4.  A defining ``range`` loop binds key and value in a scope wrapping only the
    loop body.

Identifiers are resolved as they are walked; a binding reached from any
identifier other than its declaring one is marked ``used``.
"""

from typing import List, Optional

from go_rewire.core.scope import Binding, BindingKind, Scope, import_name
from go_rewire.errors import WalkerInvariantError
from go_rewire.syntax import nodes as ast


class ScopeVisitor:
  """
  Base visitor. Every hook returns the visitor for the subtree, or None to prune.

  Visitors are treated as immutable snapshots: the walker hands the same value
  to sibling subtrees, so a subclass must return a new object instead of
  mutating itself when its per-subtree state changes.
  """

  def visit_expr(self, scope: Scope, expr: ast.Expr) -> Optional["ScopeVisitor"]:
    return self

  def visit_stmt(self, scope: Scope, stmt: ast.Stmt) -> Optional["ScopeVisitor"]:
    return self

  def visit_decl(self, scope: Scope, decl: ast.Decl) -> Optional["ScopeVisitor"]:
    return self

  def exit_scope(self, scope: Scope, node: ast.Node, last: bool) -> None:
    """Called once per scope when it is left, innermost first; ``last`` marks the scope opened by ``node`` itself."""


def exit_scopes(v: ScopeVisitor, inner: Scope, limit: Scope, node: ast.Node) -> None:
  """
  Exits every scope from ``inner`` outward until ``limit`` is reached.

  Raises:
      WalkerInvariantError: If ``limit`` is not on the chain of ``inner``.
  """
  scope: Optional[Scope] = inner
  while scope is not limit:
    if scope is None:
      raise WalkerInvariantError(
        f"scope exit chain for {type(node).__name__} at offset {node.start} is unbounded: "
        f"limit not among the {inner.depth() + 1} enclosing scopes"
      )
    v.exit_scope(scope, node, scope.outer is limit)
    scope = scope.outer


# --- binding helpers ---


def _declare_fields(scope: Scope, fields: Optional[ast.FieldList], kind: BindingKind, owner: ast.Node, **flags) -> None:
  if fields is None:
    return
  for f in fields.list:
    for name in f.names:
      if isinstance(name, ast.Ident):
        scope.insert(Binding(name.name, kind, name, owner, **flags))


def _receiver_type_params(recv: ast.FieldList) -> List[ast.Ident]:
  """Type parameters introduced by a generic receiver such as ``(l *List[T])``."""
  if not recv.list:
    return []
  rtype = recv.list[0].type
  if isinstance(rtype, ast.StarExpr):
    rtype = rtype.x
  if isinstance(rtype, ast.IndexExpr):
    return [i for i in rtype.indices if isinstance(i, ast.Ident)]
  return []


def declare_package(file: ast.File, scope: Scope) -> None:
  """Inserts imports and package-level names (not methods, not ``init``) into the file scope."""
  for spec in file.imports:
    name = import_name(spec)
    if name in (".", "_"):
      continue
    scope.insert(Binding(name, BindingKind.IMPORT, spec, spec))
  for decl in file.decls:
    if isinstance(decl, ast.FuncDecl):
      if decl.recv is None:
        scope.insert(Binding(decl.name.name, BindingKind.FUNC, decl.name, decl))
    elif isinstance(decl, ast.GenDecl):
      for spec in decl.specs:
        _declare_spec(scope, spec, decl.tok)


def _declare_spec(scope: Scope, spec: ast.Spec, tok: str) -> None:
  if isinstance(spec, ast.ValueSpec):
    kind = BindingKind.CONST if tok == "const" else BindingKind.VALUE
    for name in spec.names:
      scope.insert(Binding(name.name, kind, name, spec))
  elif isinstance(spec, ast.TypeSpec):
    scope.insert(Binding(spec.name.name, BindingKind.TYPE, spec.name, spec))


def _declare_define(stmt: ast.AssignStmt, scope: Scope) -> Scope:
  """Declares the new names of a pruned ``:=`` without walking it."""
  inner = scope.continue_scope()
  for expr in stmt.lhs:
    if isinstance(expr, ast.Ident) and scope.lookup_local_block(expr.name) is None:
      inner.insert(Binding(expr.name, BindingKind.VALUE, expr, stmt))
  return inner


def _declare_decl_stmt(stmt: ast.DeclStmt, scope: Scope) -> Scope:
  inner = scope
  for spec in stmt.decl.specs:
    inner = inner.continue_scope()
    _declare_spec(inner, spec, stmt.decl.tok)
  return inner


def _pruned(stmt: ast.Stmt, scope: Scope) -> Scope:
  if isinstance(stmt, ast.AssignStmt) and stmt.is_define:
    return _declare_define(stmt, scope)
  if isinstance(stmt, ast.DeclStmt):
    return _declare_decl_stmt(stmt, scope)
  if isinstance(stmt, ast.LabeledStmt):
    return _pruned(stmt.stmt, scope)
  return scope


# --- walking ---


def walk_file(v: Optional[ScopeVisitor], file: ast.File) -> None:
  """Walks a whole file. The file scope exits last, with ``node`` set to the File."""
  if v is None:
    return
  scope = Scope(outer=None, node=file)
  declare_package(file, scope)
  for decl in file.decls:
    walk_decl(v, decl, scope)
  v.exit_scope(scope, file, True)


def _walk_fields(v: ScopeVisitor, fields: Optional[ast.FieldList], scope: Scope) -> None:
  if fields is None:
    return
  for f in fields.list:
    if f.type is not None:
      walk_expr(v, f.type, scope)


def _walk_signature(v: ScopeVisitor, ftype: ast.FuncType, scope: Scope, owner: ast.Node) -> None:
  """Declares type parameters, parameters and results in ``scope`` and walks their types."""
  _declare_fields(scope, ftype.type_params, BindingKind.TYPE, owner, param=True)
  _walk_fields(v, ftype.type_params, scope)
  _declare_fields(scope, ftype.params, BindingKind.VALUE, owner, param=True)
  _walk_fields(v, ftype.params, scope)
  _declare_fields(scope, ftype.results, BindingKind.VALUE, owner, result=True)
  _walk_fields(v, ftype.results, scope)


def walk_decl(v: Optional[ScopeVisitor], decl: ast.Decl, scope: Scope) -> None:
  """Walks a top-level declaration; names are already in ``scope``."""
  if v is None:
    return
  v = v.visit_decl(scope, decl)
  if v is None:
    return
  if isinstance(decl, ast.FuncDecl):
    fscope = scope.new_scope(decl)
    if decl.recv is not None:
      for tparam in _receiver_type_params(decl.recv):
        fscope.insert(Binding(tparam.name, BindingKind.TYPE, tparam, decl, param=True))
      _declare_fields(fscope, decl.recv, BindingKind.VALUE, decl, param=True)
      for f in decl.recv.list:
        rtype = f.type.x if isinstance(f.type, ast.StarExpr) else f.type
        if isinstance(rtype, ast.IndexExpr):
          walk_expr(v, rtype.x, fscope)
        elif f.type is not None:
          walk_expr(v, f.type, fscope)
    _walk_signature(v, decl.type, fscope, decl)
    if decl.body is not None:
      walk_stmt(v, decl.body, fscope)
    exit_scopes(v, fscope, scope, decl)
  elif isinstance(decl, ast.GenDecl):
    for spec in decl.specs:
      if isinstance(spec, ast.ValueSpec):
        if spec.type is not None:
          walk_expr(v, spec.type, scope)
        for value in spec.values:
          walk_expr(v, value, scope)
      elif isinstance(spec, ast.TypeSpec):
        _walk_type_spec(v, spec, scope)
  else:
    raise WalkerInvariantError(f"cannot walk declaration {type(decl).__name__}")


def _walk_type_spec(v: ScopeVisitor, spec: ast.TypeSpec, scope: Scope) -> None:
  if spec.type_params is None:
    walk_expr(v, spec.type, scope)
    return
  tscope = scope.new_scope(spec)
  _declare_fields(tscope, spec.type_params, BindingKind.TYPE, spec, param=True)
  _walk_fields(v, spec.type_params, tscope)
  walk_expr(v, spec.type, tscope)
  exit_scopes(v, tscope, scope, spec)


def _walk_decl_stmt(v: ScopeVisitor, stmt: ast.DeclStmt, scope: Scope) -> Scope:
  decl = stmt.decl
  dv = v.visit_decl(scope, decl)
  if dv is None:
    return _declare_decl_stmt(stmt, scope)
  if decl.tok == "import":
    raise WalkerInvariantError("import declaration inside a statement list")
  inner = scope
  for spec in decl.specs:
    outer, inner = inner, inner.continue_scope()
    if isinstance(spec, ast.ValueSpec):
      if spec.type is not None:
        walk_expr(dv, spec.type, outer)
      for value in spec.values:
        walk_expr(dv, value, outer)
      _declare_spec(inner, spec, decl.tok)
    elif isinstance(spec, ast.TypeSpec):
      _declare_spec(inner, spec, decl.tok)
      _walk_type_spec(dv, spec, inner)
    else:
      raise WalkerInvariantError(f"cannot walk spec {type(spec).__name__} in a statement")
  return inner


def _walk_define(v: ScopeVisitor, stmt: ast.AssignStmt, scope: Scope) -> Scope:
  for expr in stmt.rhs:
    walk_expr(v, expr, scope)
  inner = scope.continue_scope()
  for expr in stmt.lhs:
    if isinstance(expr, ast.Ident):
      if expr.is_blank:
        continue
      if scope.lookup_local_block(expr.name) is not None:
        walk_expr(v, expr, scope)
      else:
        inner.insert(Binding(expr.name, BindingKind.VALUE, expr, stmt))
    else:
      walk_expr(v, expr, scope)
  return inner


def _walk_list(v: ScopeVisitor, stmts: List[ast.Stmt], scope: Scope) -> Scope:
  inner = scope
  for s in stmts:
    inner = walk_stmt(v, s, inner)
  return inner


def walk_stmt(v: Optional[ScopeVisitor], stmt: ast.Stmt, scope: Scope) -> Scope:
  """
  Walks a statement.

  Args:
      v: The visitor, or None.
      stmt: The statement.
      scope: The current scope.

  Returns:
      Scope: The scope in effect for the following sibling. Differs from
      ``scope`` only after a ``:=`` or a local declaration.
  """
  if v is None:
    return scope
  sv = v.visit_stmt(scope, stmt)
  if sv is None:
    return _pruned(stmt, scope)
  v = sv

  if isinstance(stmt, ast.ExprStmt):
    walk_expr(v, stmt.x, scope)
  elif isinstance(stmt, ast.IncDecStmt):
    walk_expr(v, stmt.x, scope)
  elif isinstance(stmt, ast.ReturnStmt):
    for expr in stmt.results:
      walk_expr(v, expr, scope)
  elif isinstance(stmt, ast.AssignStmt):
    if stmt.is_define:
      return _walk_define(v, stmt, scope)
    for expr in stmt.lhs:
      walk_expr(v, expr, scope)
    for expr in stmt.rhs:
      walk_expr(v, expr, scope)
  elif isinstance(stmt, ast.DeclStmt):
    return _walk_decl_stmt(v, stmt, scope)
  elif isinstance(stmt, ast.SendStmt):
    walk_expr(v, stmt.chan, scope)
    walk_expr(v, stmt.value, scope)
  elif isinstance(stmt, (ast.GoStmt, ast.DeferStmt)):
    walk_expr(v, stmt.call, scope)
  elif isinstance(stmt, ast.LabeledStmt):
    return walk_stmt(v, stmt.stmt, scope)
  elif isinstance(stmt, (ast.BranchStmt, ast.EmptyStmt)):
    pass
  elif isinstance(stmt, ast.BlockStmt):
    inner = _walk_list(v, stmt.list, scope.new_scope(stmt))
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.IfStmt):
    inner = scope
    if stmt.init is not None:
      inner = walk_stmt(v, stmt.init, scope.new_scope(stmt))
    walk_expr(v, stmt.cond, inner)
    walk_stmt(v, stmt.body, inner)
    if stmt.else_ is not None:
      walk_stmt(v, stmt.else_, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.ForStmt):
    inner = scope
    if stmt.init is not None:
      inner = walk_stmt(v, stmt.init, scope.new_scope(stmt))
    if stmt.cond is not None:
      walk_expr(v, stmt.cond, inner)
    if stmt.post is not None:
      walk_stmt(v, stmt.post, inner)
    walk_stmt(v, stmt.body, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.RangeStmt):
    walk_expr(v, stmt.x, scope)
    inner = scope
    if stmt.tok == ":=":
      inner = scope.new_scope(stmt)
      for expr in (stmt.key, stmt.value):
        if isinstance(expr, ast.Ident):
          inner.insert(Binding(expr.name, BindingKind.VALUE, expr, stmt))
    elif stmt.tok == "=":
      for expr in (stmt.key, stmt.value):
        if expr is not None:
          walk_expr(v, expr, scope)
    walk_stmt(v, stmt.body, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.SwitchStmt):
    inner = scope
    if stmt.init is not None:
      inner = walk_stmt(v, stmt.init, scope.new_scope(stmt))
    if stmt.tag is not None:
      walk_expr(v, stmt.tag, inner)
    walk_stmt(v, stmt.body, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.TypeSwitchStmt):
    inner = scope.new_scope(stmt)
    if stmt.init is not None:
      inner = walk_stmt(v, stmt.init, inner)
    inner = walk_stmt(v, stmt.assign, inner)
    walk_stmt(v, stmt.body, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.CaseClause):
    for expr in stmt.list or ():
      walk_expr(v, expr, scope)
    inner = _walk_list(v, stmt.body, scope.new_scope(stmt))
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.CommClause):
    inner = scope.new_scope(stmt)
    if stmt.comm is not None:
      inner = walk_stmt(v, stmt.comm, inner)
    inner = _walk_list(v, stmt.body, inner)
    exit_scopes(v, inner, scope, stmt)
  elif isinstance(stmt, ast.SelectStmt):
    walk_stmt(v, stmt.body, scope)
  else:
    raise WalkerInvariantError(f"cannot walk statement {type(stmt).__name__} at offset {stmt.start}")
  return scope


def walk_expr(v: Optional[ScopeVisitor], expr: ast.Expr, scope: Scope) -> None:
  """Walks an expression or type expression."""
  if v is None:
    return
  v = v.visit_expr(scope, expr)
  if v is None:
    return

  if isinstance(expr, ast.Ident):
    binding = scope.lookup(expr.name)
    if binding is not None and binding.ident is not expr:
      binding.used = True
  elif isinstance(expr, (ast.BasicLit, ast.FieldName)):
    pass
  elif isinstance(expr, ast.FuncLit):
    fscope = scope.new_scope(expr)
    _walk_signature(v, expr.type, fscope, expr)
    walk_stmt(v, expr.body, fscope)
    exit_scopes(v, fscope, scope, expr)
  elif isinstance(expr, ast.FuncType):
    # parameter names of a function type are not bindings
    _walk_fields(v, expr.type_params, scope)
    _walk_fields(v, expr.params, scope)
    _walk_fields(v, expr.results, scope)
  elif isinstance(expr, ast.ParenExpr):
    walk_expr(v, expr.x, scope)
  elif isinstance(expr, ast.SelectorExpr):
    walk_expr(v, expr.x, scope)
    walk_expr(v, expr.sel, scope)
  elif isinstance(expr, ast.IndexExpr):
    walk_expr(v, expr.x, scope)
    for index in expr.indices:
      walk_expr(v, index, scope)
  elif isinstance(expr, ast.SliceExpr):
    walk_expr(v, expr.x, scope)
    for part in (expr.low, expr.high, expr.max):
      if part is not None:
        walk_expr(v, part, scope)
  elif isinstance(expr, ast.TypeAssertExpr):
    walk_expr(v, expr.x, scope)
    if expr.type is not None:
      walk_expr(v, expr.type, scope)
  elif isinstance(expr, ast.CallExpr):
    walk_expr(v, expr.fun, scope)
    for targ in expr.type_args:
      walk_expr(v, targ, scope)
    for arg in expr.args:
      walk_expr(v, arg, scope)
  elif isinstance(expr, (ast.StarExpr, ast.UnaryExpr)):
    walk_expr(v, expr.x, scope)
  elif isinstance(expr, ast.BinaryExpr):
    walk_expr(v, expr.x, scope)
    walk_expr(v, expr.y, scope)
  elif isinstance(expr, ast.KeyValueExpr):
    walk_expr(v, expr.key, scope)
    walk_expr(v, expr.value, scope)
  elif isinstance(expr, ast.CompositeLit):
    if expr.type is not None:
      walk_expr(v, expr.type, scope)
    for elt in expr.elts:
      walk_expr(v, elt, scope)
  elif isinstance(expr, ast.Ellipsis):
    if expr.elt is not None:
      walk_expr(v, expr.elt, scope)
  elif isinstance(expr, ast.ArrayType):
    if expr.len is not None:
      walk_expr(v, expr.len, scope)
    walk_expr(v, expr.elt, scope)
  elif isinstance(expr, ast.MapType):
    walk_expr(v, expr.key, scope)
    walk_expr(v, expr.value, scope)
  elif isinstance(expr, ast.ChanType):
    walk_expr(v, expr.value, scope)
  elif isinstance(expr, ast.StructType):
    # field names are not bindings
    _walk_fields(v, expr.fields, scope)
  elif isinstance(expr, ast.InterfaceType):
    _walk_fields(v, expr.methods, scope)
  elif isinstance(expr, ast.BadExpr):
    for child in expr.children:
      walk_expr(v, child, scope)
  else:
    raise WalkerInvariantError(f"cannot walk expression {type(expr).__name__} at offset {expr.start}")
