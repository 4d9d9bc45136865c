"""Data models for the extt note store."""
