"""Entry point for python -m evm_vanity."""

import sys

from evm_vanity.cli import main

if __name__ == "__main__":
    sys.exit(main())
