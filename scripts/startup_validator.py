#!/usr/bin/env python3
"""Keystone Startup Validator CLI.

Runs the dependency audit the way startup would, without loading or starting
the server. Exit status is 0 when the audit passes and 1 otherwise.
"""

from pathlib import Path
import sys

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from keystone.main import main  # noqa: E402

if __name__ == "__main__":
    if not any(arg in sys.argv for arg in ["--audit-only", "--help", "-h"]):
        sys.argv.append("--audit-only")

    sys.exit(main(sys.argv[1:]))
