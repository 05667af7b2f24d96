import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from tree_sitter import Language, Node, Parser

from ef_rocket.models.analysis_models import Diagnostic, DiagnosticDescriptor
from ef_rocket.semantic.model import Compilation, SemanticModel, SyntaxTree

logger = logging.getLogger(__name__)


# --- Tree-sitter language loading -------------------------------------------

def load_csharp_language() -> Language:
    """
    Loads the Tree-sitter C# grammar for the Python bindings. The grammar ships
    as its own wheel (tree-sitter-c-sharp), so there is no build step.
    """
    try:
        import tree_sitter_c_sharp
    except ImportError as err:
        raise RuntimeError(
            "Could not load C# grammar.\n"
            "- Install `tree-sitter-c-sharp` (pip install tree-sitter-c-sharp)."
        ) from err
    return Language(tree_sitter_c_sharp.language())


# --- Analyzer plumbing ------------------------------------------------------

@dataclass
class SyntaxNodeAnalysisContext:
    """What a node action gets to see: one node, its semantic model and a sink."""
    node: Node
    semantic_model: SemanticModel
    path: str
    report_diagnostic: Callable[[Diagnostic], None]


NodeAction = Callable[[SyntaxNodeAnalysisContext], None]


class AnalysisContext:
    """Registration interface handed to Analyzer.initialize."""

    def __init__(self):
        self.node_actions: dict[str, list[NodeAction]] = {}

    def register_syntax_node_action(self, action: NodeAction, *kinds: str):
        for kind in kinds:
            self.node_actions.setdefault(kind, []).append(action)


class Analyzer:
    """Base class for rules. Subclasses register node actions in initialize."""

    supported_diagnostics: tuple[DiagnosticDescriptor, ...] = ()

    def initialize(self, context: AnalysisContext):
        raise NotImplementedError


# --- The Host ----------------------------------------------------------------

class CSharpAnalyzerHost:
    """
    Parses C# sources into a compilation and runs the registered analyzers over
    every node, collecting the diagnostics they report.
    """

    def __init__(self, analyzers: Optional[Iterable[Analyzer]] = None):
        if analyzers is None:
            from ef_rocket.analyzers.unsupported_linq import UnsupportedLinqAnalyzer
            analyzers = [UnsupportedLinqAnalyzer()]
        self.language = load_csharp_language()
        self.parser = Parser(self.language)

        self.analyzers = list(analyzers)
        self.supported_ids = {d.id for a in self.analyzers for d in a.supported_diagnostics}
        self._context = AnalysisContext()
        for analyzer in self.analyzers:
            analyzer.initialize(self._context)

        self.compilation = Compilation()

    def add_source(self, source: str, path: str = "<source>") -> SyntaxTree:
        """
        Parses a C# source file and adds it to the compilation.
        """
        source_bytes = source.encode("utf-8")
        tree = self.parser.parse(source_bytes)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; analyzing what parsed", path)
        return self.compilation.add_tree(path, source_bytes, tree)

    def analyze(self) -> list[Diagnostic]:
        """
        Runs every registered node action over every tree of the compilation.
        """
        diagnostics: list[Diagnostic] = []
        for syntax_tree in self.compilation.trees:
            diagnostics.extend(self._analyze_tree(syntax_tree))
        return sorted(diagnostics, key=lambda d: (d.location.path, d.location.line, d.location.col))

    def analyze_source(self, source: str, path: str = "<source>") -> list[Diagnostic]:
        """
        Single-file shortcut: a fresh compilation holding just this source.
        """
        self.compilation = Compilation()
        self.add_source(source, path)
        return self.analyze()

    def _analyze_tree(self, syntax_tree: SyntaxTree) -> list[Diagnostic]:
        found: list[Diagnostic] = []
        semantic_model = self.compilation.semantic_model(syntax_tree)
        actions = self._context.node_actions

        def report(diagnostic: Diagnostic):
            if diagnostic.descriptor.id not in self.supported_ids:
                raise ValueError(
                    f"Reported diagnostic {diagnostic.descriptor.id} is not declared by any analyzer"
                )
            found.append(diagnostic)

        # DFS over the AST; every node whose kind has registered actions gets them.
        stack = [syntax_tree.root]
        while stack:
            node = stack.pop()
            for action in actions.get(node.type, ()):
                action(SyntaxNodeAnalysisContext(
                    node=node,
                    semantic_model=semantic_model,
                    path=syntax_tree.path,
                    report_diagnostic=report,
                ))
            stack.extend(node.children)
        return found
