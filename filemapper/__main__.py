"""Package entry point for ``python -m filemapper``.

Delegates to the CLI's main() and exits with its return code.
"""

import sys

from filemapper.cli import main

if __name__ == "__main__":
    sys.exit(main())
