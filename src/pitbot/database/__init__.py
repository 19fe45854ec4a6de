"""
Database package for Pitbot.

Provides the append-only ledger on top of a single aiosqlite connection.

Public API:
    - LedgerStore: append / read / edit contract used by the engine
    - ConnectionManager: connection lifecycle and serialised transactions
"""
