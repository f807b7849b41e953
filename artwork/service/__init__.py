"""
Service layer for artwork generation.

This module contains reusable functions for fetching, decoding, transcoding
and caching artwork, independent of Django views. These functions are used by:
- The web API + Huey background tasks (artwork/tasks.py)
- The CLI management commands (management/commands/)
"""
