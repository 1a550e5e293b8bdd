"""Main entry point."""
import sys

from hanzisrs.app import main
from hanzisrs.config import ensure_directories
from hanzisrs.logging_config import setup_logging

if __name__ == "__main__":
    # Ensure all required directories exist
    ensure_directories()

    setup_logging("Starting hanzi-srs ...")

    sys.exit(main())
