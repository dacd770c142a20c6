# =============================================================================
# src/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Standalone command-line tools for operating the bird photo service
# outside the API server.  Each submodule runs via
# `python -m src.cli.<module>`.
#
#   PHOTO QUEUE (photo_queue.py)
#      Queue statistics, entry listing, one-off worker runs, manual reset
#      of terminal entries, and a foreground scheduler loop.
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Each module constructs its own dependencies rather than importing
#     the API app, because CLI tools run as one-shot scripts.
# =============================================================================

"""CLI tools for the bird photo service.

- ``python -m src.cli.photo_queue`` - inspect and drive the photo cache queue.
"""
