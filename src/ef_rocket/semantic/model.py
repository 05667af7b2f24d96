"""
A heuristic semantic model for C#.

There is no compiler behind this: types come from what the source declares
(fields, properties, locals, parameters, method return types) plus the LINQ
operator catalog. Anything that cannot be resolved that way resolves to None,
and rules treat None as "nothing to report".
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tree_sitter import Node, Tree

from ef_rocket.models.analysis_models import MethodDescriptor, TypeDescriptor
from ef_rocket.semantic.declarations import (
    TYPE_DECLARATIONS,
    DeclarationIndex,
    declarator_parts,
    type_from_node,
)
from ef_rocket.semantic.linq import bind_operator, element_type
from ef_rocket.tree_sitter_helpers import (
    ancestors,
    argument_expressions,
    lambda_parameters,
    member_call_parts,
    named_children,
    node_text,
    simple_name,
    unwrap_parentheses,
)

logger = logging.getLogger(__name__)

_FUNCTION_SCOPES = (
    "method_declaration",
    "constructor_declaration",
    "local_function_statement",
    "operator_declaration",
    "conversion_operator_declaration",
)


@dataclass
class SyntaxTree:
    path: str
    source_bytes: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node


class Compilation:
    """All parsed files of one analysis run plus their declaration index."""

    def __init__(self):
        self.trees: list[SyntaxTree] = []
        self.declarations = DeclarationIndex()

    def add_tree(self, path: str, source_bytes: bytes, tree: Tree) -> SyntaxTree:
        syntax_tree = SyntaxTree(path, source_bytes, tree)
        self.trees.append(syntax_tree)
        self.declarations.add_tree(source_bytes, tree.root_node)
        return syntax_tree

    def semantic_model(self, syntax_tree: SyntaxTree) -> "SemanticModel":
        return SemanticModel(self, syntax_tree)


class _Found:
    """Lookup outcome: the name was declared here, possibly without a known type."""

    def __init__(self, type_: Optional[TypeDescriptor]):
        self.type = type_


class SemanticModel:
    """Type and method resolution for the nodes of one syntax tree."""

    def __init__(self, compilation: Compilation, syntax_tree: SyntaxTree):
        self.compilation = compilation
        self.syntax_tree = syntax_tree
        self.source_bytes = syntax_tree.source_bytes

    def text(self, node: Node) -> str:
        return node_text(self.source_bytes, node)

    # -- Types ----------------------------------------------------------------

    def resolve(self, expression: Optional[Node]) -> Optional[TypeDescriptor]:
        """The declared type of an expression, or None when it is unknown."""
        if expression is None:
            return None
        expression = unwrap_parentheses(expression)
        kind = expression.type
        if kind == "identifier":
            return self._resolve_identifier(expression)
        if kind in ("this", "this_expression"):
            return self._enclosing_type(expression)
        if kind == "member_access_expression":
            return self._resolve_member_access(expression)
        if kind == "invocation_expression":
            method = self.resolve_method(expression)
            return method.return_type if method else None
        if kind in ("object_creation_expression", "cast_expression"):
            return type_from_node(self.source_bytes, expression.child_by_field_name("type"))
        return None

    def _resolve_member_access(self, node: Node) -> Optional[TypeDescriptor]:
        target = self.resolve(node.child_by_field_name("expression"))
        name = node.child_by_field_name("name")
        if target is None or name is None:
            return None
        return self.compilation.declarations.member_type(target.name, simple_name(self.source_bytes, name))

    def _enclosing_type(self, node: Node) -> Optional[TypeDescriptor]:
        for scope in ancestors(node):
            if scope.type in TYPE_DECLARATIONS:
                name = scope.child_by_field_name("name")
                return TypeDescriptor(self.text(name)) if name else None
        return None

    def _resolve_identifier(self, node: Node) -> Optional[TypeDescriptor]:
        name = self.text(node)
        for scope in ancestors(node):
            found = self._lookup_in_scope(scope, name, node)
            if found is not None:
                return found.type
        return None

    def _lookup_in_scope(self, scope: Node, name: str, use: Node) -> Optional[_Found]:
        kind = scope.type
        if kind == "lambda_expression":
            params = lambda_parameters(scope)
            if params is None:
                implicit = scope.child_by_field_name("parameters")
                if implicit is not None and self.text(implicit) == name:
                    return _Found(None)
                return None
            return self._lookup_parameters(params, name)
        if kind in _FUNCTION_SCOPES:
            params = scope.child_by_field_name("parameters")
            if params is None:
                return None
            return self._lookup_parameters([p for p in named_children(params) if p.type == "parameter"], name)
        if kind == "block":
            for statement in named_children(scope):
                if statement.start_byte >= use.start_byte:
                    break
                if statement.type == "local_declaration_statement":
                    for var_decl in named_children(statement):
                        if var_decl.type == "variable_declaration":
                            found = self._lookup_variables(var_decl, name, use)
                            if found is not None:
                                return found
            return None
        if kind == "foreach_statement":
            return self._lookup_foreach(scope, name, use)
        if kind in ("for_statement", "using_statement", "fixed_statement"):
            for child in named_children(scope):
                if child.type == "variable_declaration":
                    found = self._lookup_variables(child, name, use)
                    if found is not None:
                        return found
            return None
        if kind in TYPE_DECLARATIONS:
            type_name = scope.child_by_field_name("name")
            if type_name is None:
                return None
            member = self.compilation.declarations.member_type(self.text(type_name), name)
            return _Found(member) if member is not None else None
        return None

    def _lookup_parameters(self, params: list[Node], name: str) -> Optional[_Found]:
        for p in params:
            p_name = p.child_by_field_name("name")
            if p_name is not None and self.text(p_name) == name:
                return _Found(type_from_node(self.source_bytes, p.child_by_field_name("type")))
        return None

    def _lookup_variables(self, var_decl: Node, name: str, use: Node) -> Optional[_Found]:
        declared = type_from_node(self.source_bytes, var_decl.child_by_field_name("type"))
        for declarator in named_children(var_decl):
            if declarator.type != "variable_declarator":
                continue
            # `var x = x.Foo()` must not resolve x to itself
            if declarator.start_byte <= use.start_byte < declarator.end_byte:
                continue
            name_node, initializer = declarator_parts(declarator)
            if name_node is None or self.text(name_node) != name:
                continue
            if declared is not None:
                return _Found(declared)
            return _Found(self.resolve(initializer))
        return None

    def _lookup_foreach(self, scope: Node, name: str, use: Node) -> Optional[_Found]:
        left = scope.child_by_field_name("left")
        right = scope.child_by_field_name("right")
        if left is None or self.text(left) != name:
            return None
        if right is not None and right.start_byte <= use.start_byte < right.end_byte:
            return None
        declared = type_from_node(self.source_bytes, scope.child_by_field_name("type"))
        if declared is not None:
            return _Found(declared)
        collection = self.resolve(right)
        return _Found(element_type(collection) if collection else None)

    # -- Methods --------------------------------------------------------------

    def resolve_method(self, invocation: Node) -> Optional[MethodDescriptor]:
        """The method an invocation_expression calls, or None when it is unknown."""
        parts = member_call_parts(invocation)
        if parts is None:
            function = invocation.child_by_field_name("function")
            if function is None or function.type not in ("identifier", "generic_name"):
                return None
            enclosing = self._enclosing_type(invocation)
            if enclosing is None:
                return None
            declared = self.compilation.declarations.find_method(
                enclosing.name, simple_name(self.source_bytes, function))
            return declared.descriptor() if declared else None

        receiver, name_node = parts
        name = simple_name(self.source_bytes, name_node)
        receiver_type = self.resolve(receiver)
        if receiver_type is None:
            logger.debug("Unresolved receiver for %s at %s", name, invocation.start_point)
            return None

        declared = self.compilation.declarations.find_method(receiver_type.name, name)
        if declared is not None:
            return declared.descriptor()
        return bind_operator(receiver_type, name, self._lambda_arity(invocation))

    def _lambda_arity(self, invocation: Node) -> Optional[int]:
        args = argument_expressions(invocation)
        if not args or args[0].type != "lambda_expression":
            return None
        params = lambda_parameters(args[0])
        return 1 if params is None else len(params)
