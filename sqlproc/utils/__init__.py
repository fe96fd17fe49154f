"""Utility modules for sqlproc."""
