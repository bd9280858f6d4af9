"""
Database Utilities
==================

Shared helpers for the SQLite ops mixins.
"""

from typing import Any


def row_to_dict(row) -> dict[str, Any]:
    """
    Convert a database row to a dictionary.

    Handles:
    - None: returns empty dict
    - dict: returned as-is
    - sqlite3.Row: converted via its keys()
    """
    if row is None:
        return {}
    if isinstance(row, dict):
        return row
    return {key: row[key] for key in row.keys()}
