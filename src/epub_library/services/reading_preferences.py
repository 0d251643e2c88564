"""Reading preferences stored with QSettings.

The engine only consumes ``scroll_direction`` (passed to the renderer when
a book is opened); the other options are kept for the reader UI.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type

from PySide6.QtCore import QObject, QSettings, Signal

logger = logging.getLogger(__name__)


class ScrollDirection(Enum):
    HORIZONTAL_PAGED = "horizontal-paged"
    VERTICAL_SCROLL = "vertical-scroll"


class FontFamily(Enum):
    SERIF = "serif"
    SANS_SERIF = "sans-serif"
    MONOSPACE = "monospace"
    OPEN_DYSLEXIC = "open-dyslexic"


class ThemeMode(Enum):
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


class LibraryViewType(Enum):
    GRID = "grid"
    LIST = "list"


FONT_SIZE_RANGE = (12, 32)
LINE_HEIGHT_RANGE = (1.0, 2.0)


def _clamp(value: float, bounds: tuple) -> float:
    low, high = bounds
    return min(max(value, low), high)


def _as_enum(enum_type: Type[Enum], default: Enum) -> Callable[[Any], Enum]:
    def convert(value: Any) -> Enum:
        if isinstance(value, enum_type):
            return value
        try:
            return enum_type(value)
        except ValueError:
            logger.warning("Unknown %s %r, using %s", enum_type.__name__, value, default.value)
            return default

    return convert


def _as_font_size(value: Any) -> int:
    return int(_clamp(int(float(value)), FONT_SIZE_RANGE))


def _as_line_height(value: Any) -> float:
    return round(_clamp(float(value), LINE_HEIGHT_RANGE), 2)


DEFAULTS: Dict[str, Any] = {
    "font_size": 16,
    "font_family": FontFamily.SERIF,
    "line_height": 1.4,
    "scroll_direction": ScrollDirection.HORIZONTAL_PAGED,
    "theme_mode": ThemeMode.SYSTEM,
    "library_view_type": LibraryViewType.GRID,
}

CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    "font_size": _as_font_size,
    "font_family": _as_enum(FontFamily, DEFAULTS["font_family"]),
    "line_height": _as_line_height,
    "scroll_direction": _as_enum(ScrollDirection, DEFAULTS["scroll_direction"]),
    "theme_mode": _as_enum(ThemeMode, DEFAULTS["theme_mode"]),
    "library_view_type": _as_enum(LibraryViewType, DEFAULTS["library_view_type"]),
}


class ReadingPreferences(QObject):
    """Loads, validates and saves reader options."""

    preferences_changed = Signal(str)  # key

    def __init__(self, settings: Optional[QSettings] = None) -> None:
        super().__init__()
        if settings is None:
            settings = QSettings("EpubLibrary", "EpubLibrary")
        self._settings = settings
        self._values: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Read every option from the settings store, falling back to defaults."""
        for key, default in DEFAULTS.items():
            raw = self._settings.value(key)
            if raw is None:
                self._values[key] = default
                continue
            try:
                self._values[key] = CONVERTERS[key](raw)
            except (TypeError, ValueError):
                logger.warning("Invalid stored value for %s: %r", key, raw)
                self._values[key] = default

    def get(self, key: str) -> Any:
        if key not in DEFAULTS:
            raise KeyError(f"Unknown preference: {key}")
        return self._values[key]

    def update(self, key: str, value: Any) -> bool:
        """Validate and store one option.

        Returns:
            True if the stored value changed.

        Raises:
            KeyError: If the option is unknown.
            ValueError: If a numeric option is not a number.
        """
        if key not in DEFAULTS:
            raise KeyError(f"Unknown preference: {key}")
        try:
            converted = CONVERTERS[key](value)
        except TypeError as e:
            raise ValueError(f"Invalid value for {key}: {value!r}") from e
        if self._values.get(key) == converted:
            return False

        self._values[key] = converted
        stored = converted.value if isinstance(converted, Enum) else converted
        self._settings.setValue(key, stored)
        self._settings.sync()
        logger.debug("Preference %s set to %r", key, stored)
        self.preferences_changed.emit(key)
        return True

    @property
    def font_size(self) -> int:
        return self._values["font_size"]

    @property
    def font_family(self) -> FontFamily:
        return self._values["font_family"]

    @property
    def line_height(self) -> float:
        return self._values["line_height"]

    @property
    def scroll_direction(self) -> ScrollDirection:
        return self._values["scroll_direction"]

    @property
    def theme_mode(self) -> ThemeMode:
        return self._values["theme_mode"]

    @property
    def library_view_type(self) -> LibraryViewType:
        return self._values["library_view_type"]
