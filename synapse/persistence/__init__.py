"""Persistence layer: SQLite database and repositories."""
