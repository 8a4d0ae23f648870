"""Packaged data files (download link catalog)."""
