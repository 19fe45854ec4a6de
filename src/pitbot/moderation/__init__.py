"""
Pit moderation engine.

- **status_report.py**: Classifies a user's ledger into active, expired and
  removed strikes, releases and penalties at a fixed point in time.

- **penalty_curve.py**: Escalating suspension length for a set of active strikes.

- **reconciliation.py**: Picks the authoritative suspension across strikes,
  timeouts, self-timeouts and bullet hell penalties since the last release.

- **role_sync.py**: Flips the pit role on transitions only.

- **pit_engine.py**: Typed entry points for every command plus the periodic sweep.
"""
