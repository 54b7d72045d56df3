"""Database connection and migrations."""
