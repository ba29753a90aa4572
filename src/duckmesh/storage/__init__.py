"""Storage: job specs and inference results."""

from duckmesh.storage.base import JobStore
from duckmesh.storage.filesystem import FilesystemJobStore
from duckmesh.storage.memory import InMemoryJobStore

__all__ = [
    "FilesystemJobStore",
    "InMemoryJobStore",
    "JobStore",
]
