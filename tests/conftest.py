"""Shared fixtures and C# snippets for the analyzer tests."""

import pytest

from ef_rocket.host import CSharpAnalyzerHost
from ef_rocket.tree_sitter_helpers import simple_name

PRELUDE = """
using System.Collections.Generic;
using System.Data.Entity;
using System.Linq;

public class Order
{
    public int Id { get; set; }
}

public class User
{
    public int Id { get; set; }
    public string Name { get; set; }
    public List<Order> Orders { get; set; }
}

public class AppDbContext : DbContext
{
    public DbSet<User> Users { get; set; }
}
"""


def in_method(statements: str) -> str:
    """Wraps statements in a method of a class with a few typed fields."""
    return PRELUDE + """
public class Repository
{
    private DbSet<User> dbSet;
    private List<User> plainList;
    private AppDbContext db;

    public object Run()
    {
        %s
    }
}
""" % statements


def returning(expression: str) -> str:
    return in_method("return %s;" % expression)


def position_of(source: str, needle: str, offset: int = 0) -> tuple[int, int]:
    """0-based (line, col) of the first occurrence of needle, shifted by offset."""
    index = source.index(needle) + offset
    line = source.count("\n", 0, index)
    col = index - (source.rfind("\n", 0, index) + 1)
    return line, col


def find_invocation(syntax_tree, method_name: str, nth: int = 0):
    """The nth invocation_expression (document order) calling `.method_name(`."""
    matches = []
    stack = [syntax_tree.root]
    while stack:
        node = stack.pop()
        if node.type == "invocation_expression":
            function = node.child_by_field_name("function")
            name = function.child_by_field_name("name") if function is not None else None
            if name is not None and simple_name(syntax_tree.source_bytes, name) == method_name:
                matches.append(node)
        stack.extend(node.children)
    matches.sort(key=lambda n: n.start_byte)
    return matches[nth]


def find_identifier(syntax_tree, text: str, nth: int = 0):
    """The nth identifier node (document order) with the given text."""
    matches = []
    stack = [syntax_tree.root]
    while stack:
        node = stack.pop()
        if node.type == "identifier" and syntax_tree.source_bytes[node.start_byte:node.end_byte].decode() == text:
            matches.append(node)
        stack.extend(node.children)
    matches.sort(key=lambda n: n.start_byte)
    return matches[nth]


@pytest.fixture
def host() -> CSharpAnalyzerHost:
    """A host running the default analyzers."""
    return CSharpAnalyzerHost()
