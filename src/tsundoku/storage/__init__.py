"""Storage layer for tsundoku."""

from tsundoku.storage.base import Repository
from tsundoku.storage.link_repository import LinkRepository
from tsundoku.storage.linktag_repository import LinkTagRepository
from tsundoku.storage.tag_repository import TagRepository

__all__ = [
    "Repository",
    "LinkRepository",
    "LinkTagRepository",
    "TagRepository",
]
