"""Entry point for AspectScan when run as a module."""

import sys

from aspectscan.pipeline import main

if __name__ == "__main__":
    sys.exit(main())
