"""
Utility functions and helpers for Reaper.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log aggregation. Suppresses noise from
  verbose libraries (Discord internals, aiohttp, aiosqlite).

- **discord_utils.py**: Slash command helpers: guild-context and permission
  pre-checks and ephemeral error replies.
"""
