"""Database adapters for sqlproc."""
