"""
Presentation helpers for Pitbot.

- **pit_embeds.py**: Embeds for the log channel, user DMs and command replies.
"""
