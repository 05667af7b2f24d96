import logging
from typing import Optional

from ef_rocket.analyzers.linq_query import get_linq_query
from ef_rocket.constants import DB_SET, EXPRESSION, INT32, IQUERYABLE
from ef_rocket.host import AnalysisContext, Analyzer, SyntaxNodeAnalysisContext
from ef_rocket.models.analysis_models import (
    Diagnostic,
    DiagnosticDescriptor,
    LambdaFunctionShape,
    Location,
    Step,
    TypeDescriptor,
)
from ef_rocket.tree_sitter_helpers import argument_expressions, lambda_parameters, node_point

logger = logging.getLogger(__name__)

DIAGNOSTIC_ID = "EFX0001"

UNSUPPORTED_LINQ_RULE = DiagnosticDescriptor(
    id=DIAGNOSTIC_ID,
    title="Unsupported LINQ expression",
    message_format="This version of Entity Framework does not support {0}, "
                   "this expression may throw an exception at runtime.",
    category="LINQ",
    severity="warning",
    enabled_by_default=True,
)

# Query operators whose lambda may take the element index as a second parameter.
INDEX_SENSITIVE_OPERATORS = frozenset({"Select", "Where", "SelectMany", "SkipWhile", "TakeWhile"})


def is_index_sensitive_operator(name: str) -> bool:
    return name in INDEX_SENSITIVE_OPERATORS


def lambda_function_shape(type_: Optional[TypeDescriptor]) -> Optional[LambdaFunctionShape]:
    """
    Expression<Func<T, int, TResult>> and Func<T, int, TResult> both give
    [T, Int32, TResult]. None for non-generic types.
    """
    if type_ is None:
        return None
    if type_.name == EXPRESSION and len(type_.type_arguments) == 1:
        type_ = type_.type_arguments[0]
    if not type_.type_arguments:
        return None
    return LambdaFunctionShape(type_.type_arguments)


def check_index_lambda(step: Step, path: str) -> Optional[Diagnostic]:
    """One diagnostic at `i` in `(x, i) => ...` when the step binds the index overload."""
    if not step.symbol.parameters:
        return None
    shape = lambda_function_shape(step.symbol.parameters[0].type)
    if shape is None:
        return None
    # A two-argument Func returning int looks the same as far as the index goes,
    # so only a third type argument tells the index overload apart.
    if len(shape.type_arguments) <= 2 or shape.type_arguments[1].name != INT32:
        return None

    args = argument_expressions(step.invocation)
    params = lambda_parameters(args[0]) if args else None
    if not params or len(params) < 2:
        return None  # resolved to the index overload but no second parameter in sight
    line, col = node_point(params[1])
    return Diagnostic(
        descriptor=UNSUPPORTED_LINQ_RULE,
        location=Location(path, line, col),
        message_args=(f"using the second index parameter in {step.name}",),
    )


class UnsupportedLinqAnalyzer(Analyzer):
    """
    Flags lambdas that use the element index in query operators on a DbSet,
    which Entity Framework cannot translate to SQL.
    """

    supported_diagnostics = (UNSUPPORTED_LINQ_RULE,)

    def initialize(self, context: AnalysisContext):
        context.register_syntax_node_action(self.analyze_node, "invocation_expression")

    def analyze_node(self, context: SyntaxNodeAnalysisContext):
        query = get_linq_query(context)
        if query is None:
            return
        source_type = context.semantic_model.resolve(query.source_collection)
        # Only DbSet roots: other libraries may hand out IQueryable too.
        if source_type is None or source_type.name != DB_SET:
            return
        for step in query.steps:
            if step.symbol.receiver_type.name != IQUERYABLE:
                logger.debug("%s runs client side; stopping at %s", step.name, step.invocation.start_point)
                return
            if not is_index_sensitive_operator(step.name):
                continue
            diagnostic = check_index_lambda(step, context.path)
            if diagnostic is not None:
                context.report_diagnostic(diagnostic)
