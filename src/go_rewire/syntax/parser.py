"""
Tree-sitter Parser Adapter.

Parses Go source with the ``tree_sitter_go`` grammar and converts the
concrete syntax tree into the node model of ``go_rewire.syntax.nodes``.

The adapter is deliberately thin: it never re-lexes text and never tries to
recover from syntax errors. A tree containing ``ERROR`` or missing nodes
raises ``GoSyntaxError`` pointing at the first problem, since instrumenting a
file that the Go compiler would reject cannot produce sound output.

Grammar revisions differ in a few details (``statement_list`` and
``var_spec_list`` wrappers, ``literal_element`` around keyed values); the
converter accepts both shapes.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

import tree_sitter_go
from tree_sitter import Language, Node, Parser

from go_rewire.errors import GoSyntaxError
from go_rewire.syntax import nodes as ast

GO_LANGUAGE = Language(tree_sitter_go.language())

_LITERALS = {
  "int_literal",
  "float_literal",
  "imaginary_literal",
  "rune_literal",
  "interpreted_string_literal",
  "raw_string_literal",
  "true",
  "false",
  "nil",
  "iota",
}

_IDENTS = {"identifier", "type_identifier", "package_identifier"}

_SPECS = {"import_spec", "var_spec", "const_spec", "type_spec", "type_alias"}

_GEN_DECLS = {
  "import_declaration": "import",
  "var_declaration": "var",
  "const_declaration": "const",
  "type_declaration": "type",
}

_BRANCHES = {
  "break_statement": "break",
  "continue_statement": "continue",
  "goto_statement": "goto",
  "fallthrough_statement": "fallthrough",
}


def _named(node: Node) -> List[Node]:
  """Named children without comments."""
  return [c for c in node.named_children if c.type != "comment"]


def _child_of_type(node: Node, kind: str) -> Optional[Node]:
  for child in node.children:
    if child.type == kind:
      return child
  return None


class _Converter:
  """Converts one tree-sitter tree into a ``File`` node."""

  def __init__(self, source: bytes, filename: str):
    self.source = source
    self.filename = filename
    self._expr_handlers: Dict[str, Callable[[Node], ast.Expr]] = {
      "parenthesized_expression": self._paren,
      "parenthesized_type": self._paren,
      "call_expression": self._call,
      "selector_expression": self._selector,
      "index_expression": self._index,
      "type_instantiation_expression": self._instantiation,
      "slice_expression": self._slice,
      "type_assertion_expression": self._type_assert,
      "type_conversion_expression": self._conversion,
      "unary_expression": self._unary,
      "binary_expression": self._binary,
      "composite_literal": self._composite,
      "literal_value": self._literal_value,
      "literal_element": self._literal_element,
      "keyed_element": self._keyed,
      "func_literal": self._func_lit,
      "pointer_type": self._pointer,
      "qualified_type": self._qualified,
      "generic_type": self._generic,
      "array_type": self._array,
      "implicit_length_array_type": self._implicit_array,
      "slice_type": self._slice_type,
      "map_type": self._map,
      "channel_type": self._chan,
      "function_type": self._func_type,
      "struct_type": self._struct,
      "interface_type": self._interface,
      "negated_type": self._negated,
      "type_elem": self._union,
      "type_constraint": self._union,
    }
    self._stmt_handlers: Dict[str, Callable[[Node], ast.Stmt]] = {
      "expression_statement": self._expr_stmt,
      "send_statement": self._send,
      "inc_statement": self._incdec,
      "dec_statement": self._incdec,
      "assignment_statement": self._assign,
      "short_var_declaration": self._define,
      "receive_statement": self._receive,
      "labeled_statement": self._labeled,
      "empty_labeled_statement": self._labeled,
      "return_statement": self._return,
      "go_statement": self._go,
      "defer_statement": self._defer,
      "if_statement": self._if,
      "for_statement": self._for,
      "expression_switch_statement": self._switch,
      "type_switch_statement": self._type_switch,
      "select_statement": self._select,
      "block": self.block,
      "empty_statement": self._empty,
    }

  # --- helpers ---

  def text(self, node: Node) -> str:
    return self.source[node.start_byte : node.end_byte].decode("utf-8")

  def unsupported(self, node: Node, what: str) -> GoSyntaxError:
    row, col = node.start_point
    return GoSyntaxError(self.filename, row + 1, col + 1, f"unsupported {what} '{node.type}'")

  def ident(self, node: Node) -> ast.Ident:
    return ast.Ident(start=node.start_byte, end=node.end_byte, name=self.text(node))

  def field_name(self, node: Node) -> ast.FieldName:
    return ast.FieldName(start=node.start_byte, end=node.end_byte, name=self.text(node))

  def expr_list(self, node: Optional[Node]) -> List[ast.Expr]:
    if node is None:
      return []
    if node.type != "expression_list":
      return [self.expr(node)]
    return [self.expr(c) for c in _named(node)]

  def opt_expr(self, node: Optional[Node]) -> Optional[ast.Expr]:
    return self.expr(node) if node is not None else None

  def opt_stmt(self, node: Optional[Node]) -> Optional[ast.Stmt]:
    return self.stmt(node) if node is not None else None

  def statements(self, children: Iterable[Node]) -> List[ast.Stmt]:
    """Converts the statement children of a block or clause, flattening ``statement_list``."""
    result: List[ast.Stmt] = []
    for child in children:
      if not child.is_named or child.type == "comment":
        continue
      if child.type == "statement_list":
        result.extend(self.statements(child.children))
      else:
        result.append(self.stmt(child))
    return result

  # --- file & declarations ---

  def file(self, root: Node) -> ast.File:
    package: Optional[ast.Ident] = None
    decls: List[ast.Decl] = []
    imports: List[ast.ImportSpec] = []
    for child in _named(root):
      kind = child.type
      if kind == "package_clause":
        package = self.ident(_named(child)[0])
      elif kind in ("function_declaration", "method_declaration"):
        decls.append(self.func_decl(child))
      elif kind in _GEN_DECLS:
        decl = self.gen_decl(child)
        decls.append(decl)
        if decl.tok == "import":
          imports.extend(decl.specs)  # type: ignore[arg-type]
      elif kind == "empty_statement":
        continue
      else:
        raise self.unsupported(child, "top-level declaration")
    if package is None:
      raise GoSyntaxError(self.filename, 1, 1, "missing package clause")
    return ast.File(
      start=0,
      end=len(self.source),
      filename=self.filename,
      package=package,
      decls=decls,
      imports=imports,
    )

  def gen_decl(self, node: Node) -> ast.GenDecl:
    specs: List[ast.Spec] = []

    def collect(parent: Node) -> None:
      for child in _named(parent):
        if child.type in _SPECS:
          specs.append(self.spec(child))
        elif child.type.endswith("_list"):
          collect(child)

    collect(node)
    return ast.GenDecl(start=node.start_byte, end=node.end_byte, tok=_GEN_DECLS[node.type], specs=specs)

  def spec(self, node: Node) -> ast.Spec:
    if node.type == "import_spec":
      name = node.child_by_field_name("name")
      path = node.child_by_field_name("path")
      return ast.ImportSpec(
        start=node.start_byte,
        end=node.end_byte,
        name=ast.Ident(start=name.start_byte, end=name.end_byte, name=self.text(name)) if name else None,
        path=ast.BasicLit(start=path.start_byte, end=path.end_byte, kind="STRING", value=self.text(path)),
      )
    if node.type in ("var_spec", "const_spec"):
      return ast.ValueSpec(
        start=node.start_byte,
        end=node.end_byte,
        names=[self.ident(n) for n in node.children_by_field_name("name")],
        type=self.opt_expr(node.child_by_field_name("type")),
        values=self.expr_list(node.child_by_field_name("value")),
      )
    type_params = node.child_by_field_name("type_parameters")
    return ast.TypeSpec(
      start=node.start_byte,
      end=node.end_byte,
      name=self.ident(node.child_by_field_name("name")),
      type=self.expr(node.child_by_field_name("type")),
      type_params=self.params(type_params) if type_params else None,
      alias=node.type == "type_alias",
    )

  def func_decl(self, node: Node) -> ast.FuncDecl:
    receiver = node.child_by_field_name("receiver")
    body = node.child_by_field_name("body")
    return ast.FuncDecl(
      start=node.start_byte,
      end=node.end_byte,
      recv=self.params(receiver) if receiver else None,
      name=self.ident(node.child_by_field_name("name")),
      type=self.signature(node),
      body=self.block(body) if body else None,
    )

  def signature(self, node: Node) -> ast.FuncType:
    """Builds the FuncType of a function declaration, literal, type or method element."""
    type_params = node.child_by_field_name("type_parameters")
    result = node.child_by_field_name("result")
    results = None
    if result is not None:
      if result.type == "parameter_list":
        results = self.params(result)
      else:
        rtype = self.expr(result)
        results = ast.FieldList(
          start=result.start_byte,
          end=result.end_byte,
          list=[ast.Field(start=result.start_byte, end=result.end_byte, type=rtype)],
        )
    params = node.child_by_field_name("parameters")
    return ast.FuncType(
      start=node.start_byte,
      end=node.end_byte,
      params=self.params(params),
      results=results,
      type_params=self.params(type_params) if type_params else None,
    )

  def params(self, node: Node) -> ast.FieldList:
    """Converts a parameter_list or type_parameter_list."""
    fields: List[ast.Field] = []
    for child in _named(node):
      names: List[ast.Expr] = [self.ident(n) for n in child.children_by_field_name("name")]
      type_node = child.child_by_field_name("type")
      ftype = self.opt_expr(type_node)
      if child.type == "variadic_parameter_declaration":
        dots = _child_of_type(child, "...")
        ftype = ast.Ellipsis(
          start=dots.start_byte if dots else child.start_byte,
          end=child.end_byte,
          elt=ftype,
        )
      fields.append(ast.Field(start=child.start_byte, end=child.end_byte, names=names, type=ftype))
    return ast.FieldList(start=node.start_byte, end=node.end_byte, list=fields)

  # --- expressions ---

  def expr(self, node: Node) -> ast.Expr:
    kind = node.type
    if kind in _IDENTS:
      return self.ident(node)
    if kind == "blank_identifier":
      return ast.Ident(start=node.start_byte, end=node.end_byte, name="_")
    if kind in ("field_identifier", "label_name"):
      return self.field_name(node)
    if kind in _LITERALS:
      return ast.BasicLit(start=node.start_byte, end=node.end_byte, kind=kind, value=self.text(node))
    handler = self._expr_handlers.get(kind)
    if handler is not None:
      return handler(node)
    return ast.BadExpr(
      start=node.start_byte,
      end=node.end_byte,
      kind=kind,
      children=[self.expr(c) for c in _named(node)],
    )

  def _paren(self, node: Node) -> ast.Expr:
    return ast.ParenExpr(start=node.start_byte, end=node.end_byte, x=self.expr(_named(node)[0]))

  def _call(self, node: Node) -> ast.Expr:
    args: List[ast.Expr] = []
    ellipsis = False
    arguments = node.child_by_field_name("arguments")
    for child in _named(arguments):
      if child.type == "variadic_argument":
        ellipsis = True
        args.append(self.expr(_named(child)[0]))
      else:
        args.append(self.expr(child))
    type_args = node.child_by_field_name("type_arguments")
    return ast.CallExpr(
      start=node.start_byte,
      end=node.end_byte,
      fun=self.expr(node.child_by_field_name("function")),
      args=args,
      type_args=[self.expr(c) for c in _named(type_args)] if type_args else [],
      ellipsis=ellipsis,
    )

  def _selector(self, node: Node) -> ast.Expr:
    return ast.SelectorExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(node.child_by_field_name("operand")),
      sel=self.field_name(node.child_by_field_name("field")),
    )

  def _index(self, node: Node) -> ast.Expr:
    indices = node.children_by_field_name("index")
    return ast.IndexExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(node.child_by_field_name("operand")),
      indices=[self.expr(i) for i in indices],
    )

  def _instantiation(self, node: Node) -> ast.Expr:
    base = node.child_by_field_name("type")
    args = [c for c in _named(node) if c != base]
    return ast.IndexExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(base),
      indices=[self.expr(a) for a in args],
    )

  def _slice(self, node: Node) -> ast.Expr:
    return ast.SliceExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(node.child_by_field_name("operand")),
      low=self.opt_expr(node.child_by_field_name("start")),
      high=self.opt_expr(node.child_by_field_name("end")),
      max=self.opt_expr(node.child_by_field_name("capacity")),
    )

  def _type_assert(self, node: Node) -> ast.Expr:
    return ast.TypeAssertExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(node.child_by_field_name("operand")),
      type=self.expr(node.child_by_field_name("type")),
    )

  def _conversion(self, node: Node) -> ast.Expr:
    return ast.CallExpr(
      start=node.start_byte,
      end=node.end_byte,
      fun=self.expr(node.child_by_field_name("type")),
      args=[self.expr(node.child_by_field_name("operand"))],
    )

  def _unary(self, node: Node) -> ast.Expr:
    return ast.UnaryExpr(
      start=node.start_byte,
      end=node.end_byte,
      op=self.text(node.child_by_field_name("operator")),
      x=self.expr(node.child_by_field_name("operand")),
    )

  def _binary(self, node: Node) -> ast.Expr:
    return ast.BinaryExpr(
      start=node.start_byte,
      end=node.end_byte,
      op=self.text(node.child_by_field_name("operator")),
      x=self.expr(node.child_by_field_name("left")),
      y=self.expr(node.child_by_field_name("right")),
    )

  def _elements(self, body: Node) -> List[ast.Expr]:
    return [self.expr(c) for c in _named(body)]

  def _composite(self, node: Node) -> ast.Expr:
    body = node.child_by_field_name("body")
    return ast.CompositeLit(
      start=node.start_byte,
      end=node.end_byte,
      type=self.opt_expr(node.child_by_field_name("type")),
      elts=self._elements(body),
      lbrace=body.start_byte,
    )

  def _literal_value(self, node: Node) -> ast.Expr:
    return ast.CompositeLit(
      start=node.start_byte,
      end=node.end_byte,
      type=None,
      elts=self._elements(node),
      lbrace=node.start_byte,
    )

  def _literal_element(self, node: Node) -> ast.Expr:
    return self.expr(_named(node)[0])

  def _keyed(self, node: Node) -> ast.Expr:
    parts = _named(node)
    return ast.KeyValueExpr(
      start=node.start_byte,
      end=node.end_byte,
      key=self.expr(parts[0]),
      value=self.expr(parts[-1]),
    )

  def _func_lit(self, node: Node) -> ast.Expr:
    return ast.FuncLit(
      start=node.start_byte,
      end=node.end_byte,
      type=self.signature(node),
      body=self.block(node.child_by_field_name("body")),
    )

  def _pointer(self, node: Node) -> ast.Expr:
    return ast.StarExpr(start=node.start_byte, end=node.end_byte, x=self.expr(_named(node)[0]))

  def _qualified(self, node: Node) -> ast.Expr:
    return ast.SelectorExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.ident(node.child_by_field_name("package")),
      sel=self.field_name(node.child_by_field_name("name")),
    )

  def _generic(self, node: Node) -> ast.Expr:
    args = node.child_by_field_name("type_arguments")
    return ast.IndexExpr(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(node.child_by_field_name("type")),
      indices=[self.expr(c) for c in _named(args)] if args else [],
    )

  def _array(self, node: Node) -> ast.Expr:
    return ast.ArrayType(
      start=node.start_byte,
      end=node.end_byte,
      len=self.expr(node.child_by_field_name("length")),
      elt=self.expr(node.child_by_field_name("element")),
    )

  def _implicit_array(self, node: Node) -> ast.Expr:
    dots = _child_of_type(node, "...")
    length = ast.Ellipsis(start=dots.start_byte, end=dots.end_byte) if dots else None
    return ast.ArrayType(
      start=node.start_byte,
      end=node.end_byte,
      len=length,
      elt=self.expr(node.child_by_field_name("element")),
    )

  def _slice_type(self, node: Node) -> ast.Expr:
    return ast.ArrayType(
      start=node.start_byte,
      end=node.end_byte,
      len=None,
      elt=self.expr(node.child_by_field_name("element")),
    )

  def _map(self, node: Node) -> ast.Expr:
    return ast.MapType(
      start=node.start_byte,
      end=node.end_byte,
      key=self.expr(node.child_by_field_name("key")),
      value=self.expr(node.child_by_field_name("value")),
    )

  def _chan(self, node: Node) -> ast.Expr:
    tokens = [c.type for c in node.children if not c.is_named]
    direction = "both"
    if tokens[:1] == ["<-"]:
      direction = "recv"
    elif tokens[:2] == ["chan", "<-"]:
      direction = "send"
    return ast.ChanType(
      start=node.start_byte,
      end=node.end_byte,
      dir=direction,
      value=self.expr(node.child_by_field_name("value")),
    )

  def _func_type(self, node: Node) -> ast.Expr:
    return self.signature(node)

  def _struct(self, node: Node) -> ast.Expr:
    fields: List[ast.Field] = []
    decl_list = _child_of_type(node, "field_declaration_list")
    for child in _named(decl_list) if decl_list else []:
      names: List[ast.Expr] = [self.field_name(n) for n in child.children_by_field_name("name")]
      type_node = child.child_by_field_name("type")
      ftype = self.expr(type_node)
      if not names and _child_of_type(child, "*") is not None:
        ftype = ast.StarExpr(start=child.start_byte, end=type_node.end_byte, x=ftype)
      tag = child.child_by_field_name("tag")
      fields.append(
        ast.Field(
          start=child.start_byte,
          end=child.end_byte,
          names=names,
          type=ftype,
          tag=ast.BasicLit(start=tag.start_byte, end=tag.end_byte, kind="STRING", value=self.text(tag)) if tag else None,
        )
      )
    span = decl_list or node
    return ast.StructType(
      start=node.start_byte,
      end=node.end_byte,
      fields=ast.FieldList(start=span.start_byte, end=span.end_byte, list=fields),
    )

  def _interface(self, node: Node) -> ast.Expr:
    fields: List[ast.Field] = []
    for child in _named(node):
      if child.type in ("method_elem", "method_spec"):
        fields.append(
          ast.Field(
            start=child.start_byte,
            end=child.end_byte,
            names=[self.field_name(child.child_by_field_name("name"))],
            type=self.signature(child),
          )
        )
      else:
        fields.append(ast.Field(start=child.start_byte, end=child.end_byte, type=self.expr(child)))
    return ast.InterfaceType(
      start=node.start_byte,
      end=node.end_byte,
      methods=ast.FieldList(start=node.start_byte, end=node.end_byte, list=fields),
    )

  def _negated(self, node: Node) -> ast.Expr:
    return ast.UnaryExpr(start=node.start_byte, end=node.end_byte, op="~", x=self.expr(_named(node)[0]))

  def _union(self, node: Node) -> ast.Expr:
    terms = [self.expr(c) for c in _named(node)]
    result = terms[0]
    for term in terms[1:]:
      result = ast.BinaryExpr(start=result.start, end=term.end, op="|", x=result, y=term)
    return result

  # --- statements ---

  def stmt(self, node: Node) -> ast.Stmt:
    kind = node.type
    if kind in _GEN_DECLS:
      return ast.DeclStmt(start=node.start_byte, end=node.end_byte, decl=self.gen_decl(node))
    if kind in _BRANCHES:
      label = _child_of_type(node, "label_name")
      return ast.BranchStmt(
        start=node.start_byte,
        end=node.end_byte,
        tok=_BRANCHES[kind],
        label=self.text(label) if label else None,
      )
    handler = self._stmt_handlers.get(kind)
    if handler is None:
      raise self.unsupported(node, "statement")
    return handler(node)

  def block(self, node: Node) -> ast.BlockStmt:
    lbrace = _child_of_type(node, "{")
    rbrace = node.children[-1]
    return ast.BlockStmt(
      start=node.start_byte,
      end=node.end_byte,
      list=self.statements(node.children),
      lbrace=lbrace.start_byte if lbrace else node.start_byte,
      rbrace=rbrace.start_byte,
    )

  def _empty(self, node: Node) -> ast.Stmt:
    return ast.EmptyStmt(start=node.start_byte, end=node.end_byte)

  def _expr_stmt(self, node: Node) -> ast.Stmt:
    return ast.ExprStmt(start=node.start_byte, end=node.end_byte, x=self.expr(_named(node)[0]))

  def _send(self, node: Node) -> ast.Stmt:
    return ast.SendStmt(
      start=node.start_byte,
      end=node.end_byte,
      chan=self.expr(node.child_by_field_name("channel")),
      value=self.expr(node.child_by_field_name("value")),
    )

  def _incdec(self, node: Node) -> ast.Stmt:
    return ast.IncDecStmt(
      start=node.start_byte,
      end=node.end_byte,
      x=self.expr(_named(node)[0]),
      tok="++" if node.type == "inc_statement" else "--",
    )

  def _assign(self, node: Node) -> ast.Stmt:
    operator = node.child_by_field_name("operator")
    return ast.AssignStmt(
      start=node.start_byte,
      end=node.end_byte,
      lhs=self.expr_list(node.child_by_field_name("left")),
      tok=self.text(operator),
      tok_pos=operator.start_byte,
      rhs=self.expr_list(node.child_by_field_name("right")),
    )

  def _define(self, node: Node) -> ast.Stmt:
    tok = _child_of_type(node, ":=")
    return ast.AssignStmt(
      start=node.start_byte,
      end=node.end_byte,
      lhs=self.expr_list(node.child_by_field_name("left")),
      tok=":=",
      tok_pos=tok.start_byte,
      rhs=self.expr_list(node.child_by_field_name("right")),
    )

  def _receive(self, node: Node) -> ast.Stmt:
    left = node.child_by_field_name("left")
    right = self.expr(node.child_by_field_name("right"))
    if left is None:
      return ast.ExprStmt(start=node.start_byte, end=node.end_byte, x=right)
    tok = _child_of_type(node, ":=") or _child_of_type(node, "=")
    return ast.AssignStmt(
      start=node.start_byte,
      end=node.end_byte,
      lhs=self.expr_list(left),
      tok=tok.type,
      tok_pos=tok.start_byte,
      rhs=[right],
    )

  def _labeled(self, node: Node) -> ast.Stmt:
    label = node.child_by_field_name("label")
    rest = [c for c in _named(node) if c != label]
    if rest:
      inner = self.stmt(rest[-1])
    else:
      inner = ast.EmptyStmt(start=node.end_byte, end=node.end_byte)
    return ast.LabeledStmt(start=node.start_byte, end=node.end_byte, label=self.text(label), stmt=inner)

  def _return(self, node: Node) -> ast.Stmt:
    values = _named(node)
    return ast.ReturnStmt(
      start=node.start_byte,
      end=node.end_byte,
      results=self.expr_list(values[0]) if values else [],
    )

  def _go(self, node: Node) -> ast.Stmt:
    return ast.GoStmt(start=node.start_byte, end=node.end_byte, call=self.expr(_named(node)[0]))

  def _defer(self, node: Node) -> ast.Stmt:
    return ast.DeferStmt(start=node.start_byte, end=node.end_byte, call=self.expr(_named(node)[0]))

  def _if(self, node: Node) -> ast.Stmt:
    return ast.IfStmt(
      start=node.start_byte,
      end=node.end_byte,
      init=self.opt_stmt(node.child_by_field_name("initializer")),
      cond=self.expr(node.child_by_field_name("condition")),
      body=self.block(node.child_by_field_name("consequence")),
      else_=self.opt_stmt(node.child_by_field_name("alternative")),
    )

  def _for(self, node: Node) -> ast.Stmt:
    body_node = node.child_by_field_name("body")
    body = self.block(body_node)
    header = next((c for c in _named(node) if c != body_node), None)
    if header is not None and header.type == "range_clause":
      left = self.expr_list(header.child_by_field_name("left"))
      tok = _child_of_type(header, ":=") or _child_of_type(header, "=")
      return ast.RangeStmt(
        start=node.start_byte,
        end=node.end_byte,
        key=left[0] if left else None,
        value=left[1] if len(left) > 1 else None,
        tok=tok.type if tok else None,
        x=self.expr(header.child_by_field_name("right")),
        body=body,
      )
    if header is not None and header.type == "for_clause":
      return ast.ForStmt(
        start=node.start_byte,
        end=node.end_byte,
        init=self.opt_stmt(header.child_by_field_name("initializer")),
        cond=self.opt_expr(header.child_by_field_name("condition")),
        post=self.opt_stmt(header.child_by_field_name("update")),
        body=body,
      )
    return ast.ForStmt(
      start=node.start_byte,
      end=node.end_byte,
      init=None,
      cond=self.opt_expr(header),
      post=None,
      body=body,
    )

  def _clause(self, node: Node) -> Union[ast.CaseClause, ast.CommClause]:
    colon_index = next(i for i, c in enumerate(node.children) if c.type == ":")
    colon = node.children[colon_index].end_byte
    body = self.statements(node.children[colon_index + 1 :])
    if node.type == "communication_case":
      return ast.CommClause(
        start=node.start_byte,
        end=node.end_byte,
        comm=self.stmt(node.child_by_field_name("communication")),
        body=body,
        colon=colon,
      )
    if node.type == "expression_case":
      values: Optional[List[ast.Expr]] = self.expr_list(node.child_by_field_name("value"))
    elif node.type == "type_case":
      values = [self.expr(t) for t in node.children_by_field_name("type")]
    else:
      values = None
    if node.type == "default_case" and node.parent is not None and node.parent.type == "select_statement":
      return ast.CommClause(start=node.start_byte, end=node.end_byte, comm=None, body=body, colon=colon)
    return ast.CaseClause(start=node.start_byte, end=node.end_byte, list=values, body=body, colon=colon)

  def _case_block(self, node: Node) -> ast.BlockStmt:
    lbrace = _child_of_type(node, "{")
    rbrace = node.children[-1]
    clauses = [
      self._clause(c)
      for c in _named(node)
      if c.type in ("expression_case", "type_case", "default_case", "communication_case")
    ]
    return ast.BlockStmt(
      start=lbrace.start_byte,
      end=rbrace.end_byte,
      list=clauses,
      lbrace=lbrace.start_byte,
      rbrace=rbrace.start_byte,
    )

  def _switch(self, node: Node) -> ast.Stmt:
    return ast.SwitchStmt(
      start=node.start_byte,
      end=node.end_byte,
      init=self.opt_stmt(node.child_by_field_name("initializer")),
      tag=self.opt_expr(node.child_by_field_name("value")),
      body=self._case_block(node),
    )

  def _type_switch(self, node: Node) -> ast.Stmt:
    alias = node.child_by_field_name("alias")
    value = node.child_by_field_name("value")
    kinds = [c.type for c in node.children]
    close = node.children[kinds.index("type") + 1]
    assert_expr = ast.TypeAssertExpr(start=value.start_byte, end=close.end_byte, x=self.expr(value))
    assign: ast.Stmt
    if alias is not None:
      tok = _child_of_type(node, ":=")
      assign = ast.AssignStmt(
        start=alias.start_byte,
        end=close.end_byte,
        lhs=self.expr_list(alias),
        tok=":=",
        tok_pos=tok.start_byte,
        rhs=[assert_expr],
      )
    else:
      assign = ast.ExprStmt(start=value.start_byte, end=close.end_byte, x=assert_expr)
    return ast.TypeSwitchStmt(
      start=node.start_byte,
      end=node.end_byte,
      init=self.opt_stmt(node.child_by_field_name("initializer")),
      assign=assign,
      body=self._case_block(node),
    )

  def _select(self, node: Node) -> ast.Stmt:
    return ast.SelectStmt(start=node.start_byte, end=node.end_byte, body=self._case_block(node))


def _first_error(node: Node) -> Optional[Node]:
  if node.type == "ERROR" or node.is_missing:
    return node
  for child in node.children:
    if child.has_error or child.is_missing:
      found = _first_error(child)
      if found is not None:
        return found
  return None


class GoParser:
  """
  Reusable Go parser.

  Wraps a single ``tree_sitter.Parser`` configured for the Go grammar.
  Instances are cheap but not thread-safe; create one per worker.
  """

  def __init__(self) -> None:
    self._parser = Parser(GO_LANGUAGE)

  def parse(self, source: Union[str, bytes], filename: str = "<input>") -> ast.File:
    """
    Parses Go source text into a ``File`` node.

    Args:
        source: Source text (str is encoded as UTF-8).
        filename: Name used in error messages and stored on the File.

    Returns:
        ast.File: The converted syntax tree.

    Raises:
        GoSyntaxError: If the source has syntax errors or unsupported constructs.
    """
    data = source.encode("utf-8") if isinstance(source, str) else source
    tree = self._parser.parse(data)
    root = tree.root_node
    if root.has_error:
      bad = _first_error(root) or root
      row, col = bad.start_point
      what = f"missing {bad.type}" if bad.is_missing else "syntax error"
      raise GoSyntaxError(filename, row + 1, col + 1, what)
    return _Converter(data, filename).file(root)


def parse_source(source: Union[str, bytes], filename: str = "<input>") -> ast.File:
  """Parses a source string with a fresh parser."""
  return GoParser().parse(source, filename)


def parse_file(path: Union[str, Path]) -> ast.File:
  """Reads and parses a Go file."""
  path = Path(path)
  return GoParser().parse(path.read_bytes(), str(path))
