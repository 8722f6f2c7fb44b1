"""
Main entry point for PID Tagger (``python -m pid_tagger``).
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
