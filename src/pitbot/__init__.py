"""
Pitbot - Discord strike ledger and pit role manager

Pitbot records strikes, warnings and timeouts in an append-only SQLite ledger
and derives from it whether a user belongs in "the pit", the server's
suspension role.

Core Components:

- **Ledger**: Append-only storage of strikes, releases, warnings, timed
  penalties and bullet hell penalties, one table per record kind
- **Status Engine**: Classifies a user's history into active and expired
  strikes with chained decay, computes the escalating penalty and picks the
  single authoritative suspension across all sources
- **Role Sync**: Keeps the pit role in line with the computed state, acting
  only on transitions
- **Discord Layer**: Slash commands, the ``!bh`` minigame and a periodic sweep

Usage:
    from pitbot.main import main
    main()
"""
