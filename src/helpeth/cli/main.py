"""
Main CLI entry point for helpeth.

Installed as the ``helpeth`` console script.
"""

import logging
import sys

from helpeth.cli.enhanced_cli import main as enhanced_main

# Configure module logger
logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point"""
    logger.debug("Starting helpeth CLI")
    return enhanced_main()


if __name__ == "__main__":
    sys.exit(main() or 0)
