"""Service layer for tsundoku."""

from tsundoku.services.entry_service import EntryService

__all__ = ["EntryService"]
