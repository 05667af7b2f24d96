import logging
from typing import Optional

from tree_sitter import Node

from ef_rocket.models.analysis_models import QueryChain, Step
from ef_rocket.tree_sitter_helpers import member_call_parts, simple_name, unwrap_parentheses

logger = logging.getLogger(__name__)


def is_chain_tail(invocation: Node) -> bool:
    """
    False when the invocation is itself the receiver of another member call,
    e.g. the `Where(...)` in `users.Where(...).Select(...)`.
    """
    node = invocation
    parent = node.parent
    while parent is not None and parent.type == "parenthesized_expression":
        node, parent = parent, parent.parent
    if parent is None or parent.type != "member_access_expression":
        return True
    if parent.child_by_field_name("expression") != node:
        return True
    grandparent = parent.parent
    return grandparent is None or grandparent.type != "invocation_expression"


def get_linq_query(context) -> Optional[QueryChain]:
    """
    Resolves the fluent call chain that ends at context.node.

    Walks receivers backwards from the terminal call. Every `receiver.Name(...)`
    link becomes a Step; the first receiver that is not such a call is the source
    collection. A call whose method cannot be resolved drops itself and every
    step after it, like a client-side receiver does, so only the calls before
    the first unknown one are kept. Returns None when the node is not the tail
    of a member-call chain.
    """
    node = context.node
    semantic_model = context.semantic_model
    if member_call_parts(node) is None or not is_chain_tail(node):
        return None

    steps: list[Step] = []
    current = node
    while True:
        parts = member_call_parts(current)
        if parts is None:
            break
        receiver, name_node = parts
        name = simple_name(semantic_model.source_bytes, name_node)
        symbol = semantic_model.resolve_method(current)
        if symbol is None:
            logger.debug("Cannot resolve %s at %s; dropping it and later steps", name, current.start_point)
            steps.clear()
        else:
            steps.append(Step(name=name, symbol=symbol, invocation=current))
        current = unwrap_parentheses(receiver)

    steps.reverse()
    return QueryChain(source_collection=current, steps=steps)
