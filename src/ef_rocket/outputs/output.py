import json

from ef_rocket.models.analysis_models import Diagnostic


# --- Pretty printing & JSON export ------------------------------------------

def format_diagnostic(diagnostic: Diagnostic) -> str:
    loc = diagnostic.location
    d = diagnostic.descriptor
    return f"{loc.path}:{loc.line + 1}:{loc.col + 1}: {d.severity} {d.id}: {diagnostic.message}"


def print_summary(diagnostics: list[Diagnostic]):
    """
    Human-friendly printout of what we found, one compiler-style line each.
    """
    print("\n=== DIAGNOSTICS ===")
    for diagnostic in diagnostics:
        print(format_diagnostic(diagnostic))
    print(f"\n{len(diagnostics)} warning(s)")


def to_json(diagnostics: list[Diagnostic]) -> str:
    """
    Serializes the diagnostics to JSON, positions 1-based like the printout.
    """
    out = [
        {
            "id": d.descriptor.id,
            "category": d.descriptor.category,
            "severity": d.descriptor.severity,
            "message": d.message,
            "path": d.location.path,
            "line": d.location.line + 1,
            "col": d.location.col + 1,
        }
        for d in diagnostics
    ]
    return json.dumps(out, indent=2)
