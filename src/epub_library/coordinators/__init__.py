"""Coordinators - Orchestration layer connecting the UI and renderer with the engine."""

from .library_coordinator import LibraryCoordinator
from .reader_session_coordinator import ReaderSessionCoordinator

__all__ = [
    "LibraryCoordinator",
    "ReaderSessionCoordinator",
]
