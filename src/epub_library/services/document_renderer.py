"""Document renderer abstraction - boundary to the external EPUB viewer."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from epub_library.services.reading_preferences import ScrollDirection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenRequest:
    """Everything the renderer needs to open a book where the reader left off."""

    file_path: Path
    identifier: str
    last_locator: Optional[Dict[str, Any]]
    scroll_direction: ScrollDirection


class DocumentRenderer(ABC):
    """
    Interface of the external document viewer.

    The viewer reports reading positions back by calling
    ``ReaderSessionCoordinator.handle_position`` (usually via a signal).
    """

    @abstractmethod
    def open(self, request: OpenRequest) -> None:
        """
        Open a document.

        Raises:
            RuntimeError: If the document cannot be displayed.
        """
        pass


class LoggingRenderer(DocumentRenderer):
    """Renderer used when no viewer is attached (command line runs)."""

    def __init__(self) -> None:
        self.last_request: Optional[OpenRequest] = None

    def open(self, request: OpenRequest) -> None:
        logger.info("Open %s at %s", request.file_path, request.last_locator or "start")
        self.last_request = request
