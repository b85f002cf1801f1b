"""Persistence layer: SQLite-backed key-value store and per-user lists."""
