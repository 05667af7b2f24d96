# --- Data models for the analysis --------------------------------------------
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class TypeDescriptor:
    """A resolved type, identified by its simple (unqualified) name."""
    name: str  # e.g., "DbSet", "IQueryable", "Int32"
    type_arguments: tuple["TypeDescriptor", ...] = ()

    def __str__(self) -> str:
        if not self.type_arguments:
            return self.name
        return f"{self.name}<{', '.join(str(t) for t in self.type_arguments)}>"


@dataclass(frozen=True)
class ParameterDescriptor:
    name: str
    type: Optional[TypeDescriptor]


@dataclass(frozen=True)
class MethodDescriptor:
    """A resolved method call target."""
    name: str
    receiver_type: TypeDescriptor  # declared type the call is invoked on
    parameters: tuple[ParameterDescriptor, ...] = ()
    return_type: Optional[TypeDescriptor] = None


@dataclass(frozen=True)
class Location:
    path: str
    line: int  # 0-based
    col: int  # 0-based


@dataclass(frozen=True)
class DiagnosticDescriptor:
    id: str
    title: str
    message_format: str  # str.format template with positional arguments
    category: str
    severity: str
    enabled_by_default: bool = True


@dataclass(frozen=True)
class Diagnostic:
    descriptor: DiagnosticDescriptor
    location: Location
    message_args: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return self.descriptor.message_format.format(*self.message_args)


@dataclass
class Step:
    """One method-call link of a query chain."""
    name: str  # e.g., "Where"
    symbol: MethodDescriptor
    invocation: Any  # tree-sitter invocation_expression node


@dataclass
class QueryChain:
    """A fluent call sequence; steps run root -> terminal."""
    source_collection: Any  # tree-sitter expression node at the root
    steps: list[Step] = field(default_factory=list)


@dataclass(frozen=True)
class LambdaFunctionShape:
    """
    The type arguments of a function type: every entry but the last is a
    parameter type, the last one is the return type.
    """
    type_arguments: tuple[TypeDescriptor, ...]

    @property
    def parameter_types(self) -> tuple[TypeDescriptor, ...]:
        return self.type_arguments[:-1]

    @property
    def return_type(self) -> Optional[TypeDescriptor]:
        return self.type_arguments[-1] if self.type_arguments else None
