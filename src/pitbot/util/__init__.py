"""
Utility functions and helpers for Pitbot.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating per-session log files and quieted Discord/aiosqlite internals. Uses
  prompt_toolkit for console output.
"""
