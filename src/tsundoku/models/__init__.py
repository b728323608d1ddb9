"""Data models for tsundoku."""
