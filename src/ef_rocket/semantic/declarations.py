"""
Declaration index: which types a compilation declares and the declared types of
their fields, properties and methods. Built once per compilation by walking
every syntax tree; read-only afterwards.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from tree_sitter import Node

from ef_rocket.constants import PREDEFINED_TYPES
from ef_rocket.models.analysis_models import MethodDescriptor, ParameterDescriptor, TypeDescriptor
from ef_rocket.tree_sitter_helpers import named_children, node_text

logger = logging.getLogger(__name__)

TYPE_DECLARATIONS = (
    "class_declaration",
    "struct_declaration",
    "interface_declaration",
    "record_declaration",
    "record_struct_declaration",
)


def type_from_node(source_bytes: bytes, node: Optional[Node]) -> Optional[TypeDescriptor]:
    """
    Converts a type syntax node into a TypeDescriptor. Returns None for `var`,
    whose type has to be inferred from the initializer.
    """
    if node is None:
        return None
    kind = node.type
    if kind == "implicit_type":
        return None
    if kind == "predefined_type":
        text = node_text(source_bytes, node)
        return TypeDescriptor(PREDEFINED_TYPES.get(text, text))
    if kind == "identifier":
        text = node_text(source_bytes, node)
        return None if text == "var" else TypeDescriptor(text)
    if kind == "generic_name":
        name = ""
        args: tuple[TypeDescriptor, ...] = ()
        for child in node.children:
            if child.type == "identifier":
                name = node_text(source_bytes, child)
            elif child.type == "type_argument_list":
                args = tuple(
                    type_from_node(source_bytes, t) or TypeDescriptor("Object")
                    for t in named_children(child)
                )
        return TypeDescriptor(name, args)
    if kind in ("qualified_name", "alias_qualified_name"):
        # Only the simple name counts: System.Data.Entity.DbSet<T> -> DbSet<T>
        last = node.child_by_field_name("name") or (named_children(node) or [None])[-1]
        return type_from_node(source_bytes, last)
    if kind == "nullable_type":
        inner = named_children(node)
        return TypeDescriptor("Nullable", (type_from_node(source_bytes, inner[0]) or TypeDescriptor("Object"),)) \
            if inner else None
    if kind == "array_type":
        elem = type_from_node(source_bytes, node.child_by_field_name("type"))
        return TypeDescriptor("Array", (elem or TypeDescriptor("Object"),))
    if kind == "tuple_type":
        return TypeDescriptor("ValueTuple")
    return TypeDescriptor(node_text(source_bytes, node))


def declarator_parts(declarator: Node) -> tuple[Optional[Node], Optional[Node]]:
    """
    Returns (name, initializer) of a variable_declarator. Older grammars wrap
    the initializer in an equals_value_clause, newer ones inline it after '='.
    """
    name = declarator.child_by_field_name("name")
    initializer = None
    seen_equals = False
    for child in declarator.children:
        if name is None and child.type == "identifier":
            name = child
        elif child.type == "equals_value_clause":
            inner = named_children(child)
            initializer = inner[0] if inner else None
        elif child.type == "=":
            seen_equals = True
        elif seen_equals and child.is_named and child.type != "comment":
            initializer = child
            break
    return name, initializer


def parameter_descriptors(source_bytes: bytes, parameter_list: Optional[Node]) -> tuple[ParameterDescriptor, ...]:
    if parameter_list is None:
        return ()
    out = []
    for p in named_children(parameter_list):
        if p.type != "parameter":
            continue
        name_node = p.child_by_field_name("name")
        out.append(ParameterDescriptor(
            name=node_text(source_bytes, name_node) if name_node else "param",
            type=type_from_node(source_bytes, p.child_by_field_name("type")),
        ))
    return tuple(out)


@dataclass
class MethodDeclaration:
    name: str
    declaring_type: str
    parameters: tuple[ParameterDescriptor, ...]
    return_type: Optional[TypeDescriptor]

    def descriptor(self) -> MethodDescriptor:
        return MethodDescriptor(
            name=self.name,
            receiver_type=TypeDescriptor(self.declaring_type),
            parameters=self.parameters,
            return_type=self.return_type,
        )


@dataclass
class TypeDeclaration:
    """A class, struct, interface or record; partial declarations are merged."""
    name: str
    bases: list[str] = field(default_factory=list)
    members: dict[str, TypeDescriptor] = field(default_factory=dict)  # fields & properties
    methods: dict[str, MethodDeclaration] = field(default_factory=dict)  # first overload wins


class DeclarationIndex:
    """simple type name -> TypeDeclaration, across every tree of a compilation."""

    def __init__(self):
        self.types: dict[str, TypeDeclaration] = {}

    def add_tree(self, source_bytes: bytes, root: Node):
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type in TYPE_DECLARATIONS:
                self._index_type(source_bytes, node)
            stack.extend(node.children)

    def _index_type(self, source_bytes: bytes, node: Node):
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(source_bytes, name_node)
        decl = self.types.setdefault(name, TypeDeclaration(name=name))

        for child in node.children:
            if child.type == "base_list":
                for base in named_children(child):
                    base_type = type_from_node(source_bytes, base)
                    if base_type is not None:
                        decl.bases.append(base_type.name)

        body = node.child_by_field_name("body")
        if body is None:
            return
        for member in named_children(body):
            if member.type == "field_declaration":
                for var_decl in named_children(member):
                    if var_decl.type == "variable_declaration":
                        self._index_variables(source_bytes, var_decl, decl)
            elif member.type == "property_declaration":
                prop_type = type_from_node(source_bytes, member.child_by_field_name("type"))
                prop_name = member.child_by_field_name("name")
                if prop_type is not None and prop_name is not None:
                    decl.members[node_text(source_bytes, prop_name)] = prop_type
            elif member.type == "method_declaration":
                method_name = member.child_by_field_name("name")
                if method_name is None:
                    continue
                returns = member.child_by_field_name("returns") or member.child_by_field_name("type")
                method = MethodDeclaration(
                    name=node_text(source_bytes, method_name),
                    declaring_type=name,
                    parameters=parameter_descriptors(source_bytes, member.child_by_field_name("parameters")),
                    return_type=type_from_node(source_bytes, returns),
                )
                decl.methods.setdefault(method.name, method)

    def _index_variables(self, source_bytes: bytes, var_decl: Node, decl: TypeDeclaration):
        var_type = type_from_node(source_bytes, var_decl.child_by_field_name("type"))
        if var_type is None:
            return
        for declarator in named_children(var_decl):
            if declarator.type != "variable_declarator":
                continue
            name_node, _ = declarator_parts(declarator)
            if name_node is not None:
                decl.members[node_text(source_bytes, name_node)] = var_type

    # -- Lookups --------------------------------------------------------------

    def _hierarchy(self, type_name: str):
        """The declaration of type_name, then its declared bases, depth-first."""
        seen = set()
        pending = [type_name]
        while pending:
            current = pending.pop(0)
            if current in seen:
                continue
            seen.add(current)
            decl = self.types.get(current)
            if decl is None:
                continue
            yield decl
            pending.extend(decl.bases)

    def member_type(self, type_name: str, member: str) -> Optional[TypeDescriptor]:
        for decl in self._hierarchy(type_name):
            if member in decl.members:
                return decl.members[member]
        return None

    def find_method(self, type_name: str, method: str) -> Optional[MethodDeclaration]:
        for decl in self._hierarchy(type_name):
            if method in decl.methods:
                return decl.methods[method]
        return None
