# --- Directory scanning convenience -----------------------------------------
import logging
import os

from ef_rocket.host import CSharpAnalyzerHost

logger = logging.getLogger(__name__)


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
        return f.read()


def index_directory(host: CSharpAnalyzerHost, root_dir: str) -> int:
    """
    Recursively adds all .cs files in a directory to the host's compilation.
    Every file has to be in before analysis starts, since members used in one
    file are often declared in another (the DbContext, typically).
    Returns the number of files added.
    """
    added = 0
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(d for d in dirnames if d not in ("bin", "obj") and not d.startswith("."))
        for fn in sorted(filenames):
            if fn.endswith(".cs"):
                full = os.path.join(dirpath, fn)
                try:
                    src = read_text(full)
                    host.add_source(src, full)
                    added += 1
                except (OSError, ValueError) as e:
                    logger.warning("Failed to index %s: %s", full, e)
    return added
