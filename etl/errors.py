"""
etl/errors.py

Exceptions raised by the Snowflake export loaders.
"""

from __future__ import annotations


class ETLError(Exception):
    """Base exception for ETL failures."""


class SourceFileError(ETLError):
    """
    Raised when a source export cannot be opened, decompressed or decoded.

    Fatal for the table being loaded; the orchestrator records the failure
    and moves on to the next table.
    """


class BatchPersistenceError(ETLError):
    """
    Raised when a batch upsert fails at the database.

    Non-fatal: the loader counts the whole batch as failed and continues.
    """


class UnknownTableError(ETLError, ValueError):
    """Raised when a caller asks for a table that has no load mapping."""
