#!/usr/bin/env python3
"""
Entity Framework LINQ checker
-----------------------------
Parses C# code and reports LINQ queries against a DbSet that Entity Framework
cannot translate:
- EFX0001: lambdas using the second (index) parameter in Select, Where,
  SelectMany, SkipWhile or TakeWhile

USAGE EXAMPLES
--------------
# 1) Run against an in-code sample (no files needed):
python -m ef_rocket.main

# 2) Run against a directory of .cs files (recursive):
python -m ef_rocket.main /path/to/csharp/project

Set EF_ROCKET_LOG_LEVEL=DEBUG to see why chains were skipped.

DEPENDENCIES
------------
    pip install tree-sitter tree-sitter-c-sharp
"""

import logging
import os
import sys

from ef_rocket.host import CSharpAnalyzerHost
from ef_rocket.inputs.directory_scanning import index_directory
from ef_rocket.outputs.output import print_summary, to_json

# --- Demo main ---------------------------------------------------------------

SAMPLE_CSHARP = r"""
using System.Data.Entity;
using System.Linq;

namespace Acme.Demo
{
    public class User
    {
        public int Id { get; set; }
        public string Name { get; set; }
    }

    public class AppDbContext : DbContext
    {
        public DbSet<User> Users { get; set; }
    }

    public class UserService
    {
        private readonly AppDbContext db = new AppDbContext();

        public object FirstFive()
        {
            // Translated to SQL: the index parameter is not supported
            return db.Users.Where((u, i) => i < 5).ToList();
        }

        public object Names()
        {
            return db.Users.Select(u => u.Name).ToList();
        }

        public object NumberedLocally()
        {
            // AsEnumerable switches to LINQ to Objects, so this one is fine
            return db.Users.AsEnumerable().Select((u, i) => i + ": " + u.Name).ToList();
        }
    }
}
"""


def main():
    logging.basicConfig(
        level=os.environ.get("EF_ROCKET_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Create host (loads the Tree-sitter C# grammar once)
    host = CSharpAnalyzerHost()

    # If a directory is given, analyze the .cs files in it; else use SAMPLE_CSHARP
    if len(sys.argv) > 1:
        root = sys.argv[1]
        index_directory(host, root)
    else:
        host.add_source(SAMPLE_CSHARP, "<sample>")

    diagnostics = host.analyze()

    # Print a concise human-readable summary
    print_summary(diagnostics)

    # Also print JSON (easy to feed into other tooling)
    print("\n=== JSON ===")
    print(to_json(diagnostics))


if __name__ == "__main__":
    main()
