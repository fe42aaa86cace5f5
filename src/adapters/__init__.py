"""Adapters that satisfy the core ports: HTTP feeds, SQLite dedup, SMTP mail."""
