# --- Tree-sitter plumbing ----------------------------------------------------
from typing import Iterator, Optional

from tree_sitter import Node


def node_text(source_bytes: bytes, node) -> str:
    """
    Converts a node's [start_byte:end_byte] into the corresponding string.
    Tree-sitter nodes only store byte offsets, so we slice the original source.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_point(node) -> tuple[int, int]:
    """
    Returns the (line, column) of a node's start in 0-based coordinates.
    Handy for displaying where a diagnostic was found.
    """
    return (node.start_point[0], node.start_point[1])


def named_children(node: Node) -> list[Node]:
    """Named children minus comments, which may appear anywhere."""
    return [c for c in node.named_children if c.type != "comment"]


def ancestors(node: Node) -> Iterator[Node]:
    parent = node.parent
    while parent is not None:
        yield parent
        parent = parent.parent


def unwrap_parentheses(node: Node) -> Node:
    while node.type == "parenthesized_expression":
        inner = named_children(node)
        if not inner:
            break
        node = inner[0]
    return node


def argument_expressions(invocation: Node) -> list[Node]:
    """
    The expressions passed to an invocation_expression, in order.
    argument -> [name_colon] ['ref'|'out'|'in'] expression
    """
    args_node = invocation.child_by_field_name("arguments")
    if args_node is None:
        return []
    out = []
    for arg in named_children(args_node):
        if arg.type != "argument":
            continue
        parts = [c for c in named_children(arg) if c.type != "name_colon"]
        if parts:
            out.append(parts[-1])
    return out


def member_call_parts(invocation: Node) -> Optional[tuple[Node, Node]]:
    """
    For `receiver.Name(args)` returns (receiver, name node); None for calls
    that are not made through member access.
    """
    if invocation.type != "invocation_expression":
        return None
    function = invocation.child_by_field_name("function")
    if function is None or function.type != "member_access_expression":
        return None
    receiver = function.child_by_field_name("expression")
    name = function.child_by_field_name("name")
    if receiver is None or name is None:
        return None
    return receiver, name


def simple_name(source_bytes: bytes, name_node: Node) -> str:
    """`Select` for both `Select` and `Select<User, int>`."""
    if name_node.type == "generic_name":
        for child in name_node.children:
            if child.type == "identifier":
                return node_text(source_bytes, child)
    return node_text(source_bytes, name_node)


def lambda_parameters(lambda_node: Node) -> Optional[list[Node]]:
    """
    The `parameter` nodes of a parenthesized lambda such as `(x, i) => ...`.
    None for single-identifier lambdas (`x => ...`) and non-lambdas.
    """
    if lambda_node.type != "lambda_expression":
        return None
    params = lambda_node.child_by_field_name("parameters")
    if params is None or params.type != "parameter_list":
        return None
    return [p for p in named_children(params) if p.type == "parameter"]
