"""CLI entry point - wrapper for running from a checkout

This file runs the main CLI from the modular cli package.
"""

import sys

from cli.main import main

if __name__ == "__main__":
    sys.exit(main())
