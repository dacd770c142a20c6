# =============================================================================
# src/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Running the CLI package itself (`python -m src.cli`) delegates to the
# photo queue CLI, the only operator tool in this package.
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

import sys

from src.cli.photo_queue import main

sys.exit(main())
