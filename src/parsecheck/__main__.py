"""Entry point for ``python -m parsecheck``."""

import sys

from parsecheck.cli import main

if __name__ == "__main__":
    sys.exit(main())
