"""
Configuration management for Reaper.

- **app_configuration.py**: YAML configuration loader for process-wide
  settings: database path, expiry sweep interval, system moderator id and log
  level. Falls back to defaults on missing or malformed config files.

Per-guild settings live in the database; see ``reaper.services``.
"""
