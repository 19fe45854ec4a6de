"""
Configuration management for Pitbot.

- **app_configuration.py**: YAML configuration loader read under a shared file
  lock. Falls back to an empty mapping on missing or malformed config files.

- **pit_settings.py**: Typed, validated view of the ``pitbot`` section: Discord
  ids, ledger path, expiration horizon, penalty tables, sweep interval and
  self-timeout / minigame limits.
"""
