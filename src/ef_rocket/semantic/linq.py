"""
Catalog of the System.Linq extension methods (and the Entity Framework query
extensions) the semantic model binds member calls to when the receiver's class
does not declare the method itself.

Binding mimics C# extension-method overload resolution closely enough for the
rules: a queryable receiver prefers `Queryable` operators, whose `this`
parameter is `IQueryable<T>`; anything else that is enumerable gets the
`Enumerable` operator, whose `this` parameter is `IEnumerable<T>`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ef_rocket.constants import EXPRESSION, INT32, IQUERYABLE
from ef_rocket.models.analysis_models import MethodDescriptor, ParameterDescriptor, TypeDescriptor

logger = logging.getLogger(__name__)

QUERYABLE_RECEIVERS = frozenset({
    "DbSet", "IDbSet", "DbQuery", "IQueryable", "IOrderedQueryable",
    "ObjectSet", "ObjectQuery", "IIncludableQueryable",
})

ENUMERABLE_RECEIVERS = frozenset({
    "IEnumerable", "IOrderedEnumerable", "IGrouping", "ILookup", "Lookup",
    "List", "IList", "ICollection", "IReadOnlyList", "IReadOnlyCollection",
    "Collection", "ReadOnlyCollection", "ObservableCollection",
    "HashSet", "ISet", "SortedSet", "LinkedList", "Queue", "Stack",
    "Array", "ImmutableArray", "ImmutableList",
})

# Return shapes
SAME = "same"            # IQueryable<T> / IEnumerable<T>
ORDERED = "ordered"      # IOrderedQueryable<T> / IOrderedEnumerable<T>
PROJECTED = "projected"  # IQueryable<TResult> / IEnumerable<TResult>
ELEMENT = "element"      # T
LIST = "list"            # List<T>
ARRAY = "array"          # T[]
ENUMERABLE = "enumerable"  # IEnumerable<T>, whatever the receiver was
QUERYABLE = "queryable"    # IQueryable<T>, whatever the receiver was


@dataclass(frozen=True)
class LinqOperator:
    name: str
    returns: str  # one of the return shapes above, or a CLR type name
    takes_lambda: bool = False
    index_overload: bool = False  # has a (value, index) lambda overload
    this_type: Optional[str] = None  # overrides the family's `this` type


def _table(*ops: LinqOperator) -> dict[str, LinqOperator]:
    return {op.name: op for op in ops}


_COMMON = (
    LinqOperator("Where", SAME, takes_lambda=True, index_overload=True),
    LinqOperator("Select", PROJECTED, takes_lambda=True, index_overload=True),
    LinqOperator("SelectMany", PROJECTED, takes_lambda=True, index_overload=True),
    LinqOperator("SkipWhile", SAME, takes_lambda=True, index_overload=True),
    LinqOperator("TakeWhile", SAME, takes_lambda=True, index_overload=True),
    LinqOperator("OrderBy", ORDERED, takes_lambda=True),
    LinqOperator("OrderByDescending", ORDERED, takes_lambda=True),
    LinqOperator("GroupBy", PROJECTED, takes_lambda=True),
    LinqOperator("Join", PROJECTED),
    LinqOperator("GroupJoin", PROJECTED),
    LinqOperator("Skip", SAME),
    LinqOperator("Take", SAME),
    LinqOperator("Distinct", SAME),
    LinqOperator("Reverse", SAME),
    LinqOperator("Concat", SAME),
    LinqOperator("Union", SAME),
    LinqOperator("Intersect", SAME),
    LinqOperator("Except", SAME),
    LinqOperator("DefaultIfEmpty", SAME),
    LinqOperator("Cast", PROJECTED),
    LinqOperator("OfType", PROJECTED),
    LinqOperator("First", ELEMENT, takes_lambda=True),
    LinqOperator("FirstOrDefault", ELEMENT, takes_lambda=True),
    LinqOperator("Single", ELEMENT, takes_lambda=True),
    LinqOperator("SingleOrDefault", ELEMENT, takes_lambda=True),
    LinqOperator("Last", ELEMENT, takes_lambda=True),
    LinqOperator("LastOrDefault", ELEMENT, takes_lambda=True),
    LinqOperator("ElementAt", ELEMENT),
    LinqOperator("ElementAtOrDefault", ELEMENT),
    LinqOperator("Any", "Boolean", takes_lambda=True),
    LinqOperator("All", "Boolean", takes_lambda=True),
    LinqOperator("Contains", "Boolean"),
    LinqOperator("Count", INT32, takes_lambda=True),
    LinqOperator("LongCount", "Int64", takes_lambda=True),
    LinqOperator("Sum", "TResult", takes_lambda=True),
    LinqOperator("Average", "TResult", takes_lambda=True),
    LinqOperator("Min", "TResult", takes_lambda=True),
    LinqOperator("Max", "TResult", takes_lambda=True),
)

QUERYABLE_OPERATORS = _table(
    *_COMMON,
    LinqOperator("ThenBy", ORDERED, takes_lambda=True, this_type="IOrderedQueryable"),
    LinqOperator("ThenByDescending", ORDERED, takes_lambda=True, this_type="IOrderedQueryable"),
    LinqOperator("AsQueryable", QUERYABLE, this_type="IEnumerable"),
    # Entity Framework QueryableExtensions
    LinqOperator("Include", SAME),
    LinqOperator("AsNoTracking", SAME),
    LinqOperator("AsTracking", SAME),
)

ENUMERABLE_OPERATORS = _table(
    *_COMMON,
    LinqOperator("ThenBy", ORDERED, takes_lambda=True, this_type="IOrderedEnumerable"),
    LinqOperator("ThenByDescending", ORDERED, takes_lambda=True, this_type="IOrderedEnumerable"),
    LinqOperator("AsEnumerable", ENUMERABLE),
    LinqOperator("ToList", LIST),
    LinqOperator("ToArray", ARRAY),
    LinqOperator("ToDictionary", "Dictionary", takes_lambda=True),
    LinqOperator("ToLookup", "ILookup", takes_lambda=True),
)

_OBJECT = TypeDescriptor("Object")
_RESULT = TypeDescriptor("TResult")


def element_type(collection: TypeDescriptor) -> TypeDescriptor:
    """`User` for `DbSet<User>`; Object when the element type is unknown."""
    return collection.type_arguments[0] if collection.type_arguments else _OBJECT


def _return_type(op: LinqOperator, family: str, element: TypeDescriptor) -> TypeDescriptor:
    queryable = family == IQUERYABLE
    if op.returns == SAME:
        return TypeDescriptor(family, (element,))
    if op.returns == ORDERED:
        return TypeDescriptor("IOrderedQueryable" if queryable else "IOrderedEnumerable", (element,))
    if op.returns == PROJECTED:
        return TypeDescriptor(family, (_RESULT,))
    if op.returns == ELEMENT:
        return element
    if op.returns == LIST:
        return TypeDescriptor("List", (element,))
    if op.returns == ARRAY:
        return TypeDescriptor("Array", (element,))
    if op.returns == ENUMERABLE:
        return TypeDescriptor("IEnumerable", (element,))
    if op.returns == QUERYABLE:
        return TypeDescriptor(IQUERYABLE, (element,))
    return TypeDescriptor(op.returns)


def _lambda_parameter(op: LinqOperator, family: str, element: TypeDescriptor,
                      lambda_arity: int) -> ParameterDescriptor:
    if op.index_overload and lambda_arity >= 2:
        func = TypeDescriptor("Func", (element, TypeDescriptor(INT32), _RESULT))
    else:
        func = TypeDescriptor("Func", (element, _RESULT))
    if family == IQUERYABLE:
        # Queryable operators take expression trees, not delegates
        return ParameterDescriptor("selector", TypeDescriptor(EXPRESSION, (func,)))
    return ParameterDescriptor("selector", func)


def bind_operator(receiver: TypeDescriptor, name: str,
                  lambda_arity: Optional[int]) -> Optional[MethodDescriptor]:
    """
    Binds `receiver.name(...)` to a LINQ operator.

    lambda_arity is the parameter count of the call's first argument when it is
    a lambda, None otherwise.
    """
    if receiver.name in QUERYABLE_RECEIVERS and name in QUERYABLE_OPERATORS:
        op, family = QUERYABLE_OPERATORS[name], IQUERYABLE
    elif (receiver.name in QUERYABLE_RECEIVERS or receiver.name in ENUMERABLE_RECEIVERS) \
            and name in ENUMERABLE_OPERATORS:
        op, family = ENUMERABLE_OPERATORS[name], "IEnumerable"
    else:
        return None

    element = element_type(receiver)
    this_type = TypeDescriptor(op.this_type or family, (element,))
    parameters: tuple[ParameterDescriptor, ...] = ()
    if op.takes_lambda and lambda_arity is not None:
        parameters = (_lambda_parameter(op, family, element, lambda_arity),)
    logger.debug("Bound %s.%s to %s.%s", receiver, name, family, op.name)
    return MethodDescriptor(
        name=op.name,
        receiver_type=this_type,
        parameters=parameters,
        return_type=_return_type(op, family, element),
    )
