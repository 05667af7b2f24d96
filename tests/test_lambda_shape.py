"""Lambda-shape checking and step classification against hand-built symbols."""

import pytest

from conftest import find_invocation, position_of, returning
from ef_rocket.analyzers.unsupported_linq import (
    UnsupportedLinqAnalyzer,
    check_index_lambda,
    lambda_function_shape,
)
from ef_rocket.host import SyntaxNodeAnalysisContext
from ef_rocket.models.analysis_models import MethodDescriptor, ParameterDescriptor, Step, TypeDescriptor

USER = TypeDescriptor("User")
INT = TypeDescriptor("Int32")
RESULT = TypeDescriptor("TResult")
QUERYABLE = TypeDescriptor("IQueryable", (USER,))


def func(*args: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor("Func", args)


def expression(inner: TypeDescriptor) -> TypeDescriptor:
    return TypeDescriptor("Expression", (inner,))


def step_for(syntax_tree, name: str, parameter_type, receiver=QUERYABLE, nth: int = 0) -> Step:
    params = () if parameter_type is None else (ParameterDescriptor("selector", parameter_type),)
    return Step(
        name=name,
        symbol=MethodDescriptor(name, receiver, params, QUERYABLE),
        invocation=find_invocation(syntax_tree, name, nth),
    )


@pytest.fixture
def tree(host):
    source = returning("dbSet.Where((x, i) => i > 5).Select(x => x.Name)")
    return source, host.add_source(source, "Shape.cs")


class TestLambdaFunctionShape:
    def test_expression_is_unwrapped(self) -> None:
        shape = lambda_function_shape(expression(func(USER, INT, RESULT)))
        assert shape.type_arguments == (USER, INT, RESULT)
        assert shape.parameter_types == (USER, INT)
        assert shape.return_type == RESULT

    def test_plain_delegate(self) -> None:
        assert lambda_function_shape(func(USER, RESULT)).type_arguments == (USER, RESULT)

    def test_non_generic_type_has_no_shape(self) -> None:
        assert lambda_function_shape(INT) is None
        assert lambda_function_shape(None) is None


class TestCheckIndexLambda:
    def test_index_overload_is_reported_at_second_parameter(self, tree) -> None:
        source, syntax_tree = tree
        step = step_for(syntax_tree, "Where", expression(func(USER, INT, TypeDescriptor("Boolean"))))

        diagnostic = check_index_lambda(step, "Shape.cs")

        assert diagnostic is not None
        assert (diagnostic.location.line, diagnostic.location.col) == position_of(source, "(x, i)", 4)
        assert diagnostic.message_args == ("using the second index parameter in Where",)

    def test_two_type_arguments_are_not_an_index(self, tree) -> None:
        _, syntax_tree = tree
        step = step_for(syntax_tree, "Where", expression(func(USER, INT)))
        assert check_index_lambda(step, "Shape.cs") is None

    def test_second_type_argument_must_be_int32(self, tree) -> None:
        _, syntax_tree = tree
        step = step_for(syntax_tree, "Where", func(USER, TypeDescriptor("String"), RESULT))
        assert check_index_lambda(step, "Shape.cs") is None

    def test_no_declared_parameters(self, tree) -> None:
        _, syntax_tree = tree
        assert check_index_lambda(step_for(syntax_tree, "Where", None), "Shape.cs") is None

    def test_lambda_without_second_parameter(self, tree) -> None:
        # Symbol claims the index overload, syntax has `x => x.Name`
        _, syntax_tree = tree
        step = step_for(syntax_tree, "Select", func(USER, INT, RESULT))
        assert check_index_lambda(step, "Shape.cs") is None


class FakeSemanticModel:
    """Resolves the root to a fixed type and each call by method name."""

    def __init__(self, source_bytes: bytes, root_type, symbols: dict[str, MethodDescriptor]):
        self.source_bytes = source_bytes
        self.root_type = root_type
        self.symbols = symbols

    def resolve(self, expression):
        return self.root_type

    def resolve_method(self, invocation):
        function = invocation.child_by_field_name("function")
        name = function.child_by_field_name("name")
        return self.symbols.get(self.source_bytes[name.start_byte:name.end_byte].decode())


def run_analyzer(host, expression_text: str, root_type, symbols) -> list:
    source = returning(expression_text)
    syntax_tree = host.add_source(source, "Fake.cs")
    terminal = find_invocation(syntax_tree, list(symbols)[-1])
    model = FakeSemanticModel(syntax_tree.source_bytes, root_type, symbols)
    reported = []
    UnsupportedLinqAnalyzer().analyze_node(SyntaxNodeAnalysisContext(
        node=terminal, semantic_model=model, path="Fake.cs", report_diagnostic=reported.append,
    ))
    return reported


class TestStepClassification:
    def test_foreign_receiver_stops_the_whole_chain(self, host) -> None:
        reported = run_analyzer(host, "src.Take(3).Where((x, i) => i > 0)", TypeDescriptor("DbSet", (USER,)), {
            "Take": MethodDescriptor("Take", TypeDescriptor("IEnumerable", (USER,)), (ParameterDescriptor("count", INT),)),
            "Where": MethodDescriptor("Where", QUERYABLE, (ParameterDescriptor("p", expression(func(USER, INT, RESULT))),)),
        })
        assert reported == []

    def test_shape_mismatch_skips_only_that_step(self, host) -> None:
        reported = run_analyzer(host, "src.Select((x, y) => x).Where((x, i) => i > 0)", TypeDescriptor("DbSet", (USER,)), {
            "Select": MethodDescriptor("Select", QUERYABLE, (ParameterDescriptor("p", func(USER, TypeDescriptor("String"), RESULT)),)),
            "Where": MethodDescriptor("Where", QUERYABLE, (ParameterDescriptor("p", func(USER, INT, RESULT)),)),
        })
        assert [d.message_args[0] for d in reported] == ["using the second index parameter in Where"]

    def test_root_gate_uses_exact_name(self, host) -> None:
        reported = run_analyzer(host, "src.Where((x, i) => i > 0)", TypeDescriptor("IDbSet", (USER,)), {
            "Where": MethodDescriptor("Where", QUERYABLE, (ParameterDescriptor("p", func(USER, INT, RESULT)),)),
        })
        assert reported == []

    def test_unknown_root_type(self, host) -> None:
        reported = run_analyzer(host, "src.Where((x, i) => i > 0)", None, {
            "Where": MethodDescriptor("Where", QUERYABLE, (ParameterDescriptor("p", func(USER, INT, RESULT)),)),
        })
        assert reported == []
