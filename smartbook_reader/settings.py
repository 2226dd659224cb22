"""Reader display settings and theme colours."""

import logging
from dataclasses import dataclass, fields
from enum import Enum

logger = logging.getLogger(__name__)

FONT_FAMILIES = ("System", "PingFang SC", "Heiti SC", "STSong", "Kaiti SC")

# Closed ranges enforced by the settings controls (min, max, step)
FONT_SIZE_RANGE = (14, 28, 1)
LINE_SPACING_RANGE = (4, 16, 2)

# Changing any of these requires the book to be paginated again
PAGINATION_FIELDS = frozenset({"font_size", "line_spacing"})


class BackgroundTheme(str, Enum):
    DARK = "dark"
    SEPIA = "sepia"
    LIGHT = "light"


class TextAlignment(str, Enum):
    LEADING = "leading"
    CENTER = "center"
    TRAILING = "trailing"


class PageTurnStyle(str, Enum):
    SLIDE = "slide"
    CURL = "curl"
    FADE = "fade"


@dataclass(frozen=True)
class ThemeColors:
    """Background/text colour pair as hex strings."""
    background: str
    text: str


_THEME_COLORS = {
    BackgroundTheme.DARK: ThemeColors(background="#1A1A2E", text="#E6E6E6"),
    BackgroundTheme.SEPIA: ThemeColors(background="#F4ECD8", text="#5B4636"),
    BackgroundTheme.LIGHT: ThemeColors(background="#FFFFFF", text="#000000"),
}


def theme(background_theme: BackgroundTheme) -> ThemeColors:
    """Return the colour pair for a background theme."""
    return _THEME_COLORS[BackgroundTheme(background_theme)]


def value_range(minimum: int, maximum: int, step: int) -> list[int]:
    """All values a stepper control can produce for a closed range."""
    return list(range(minimum, maximum + 1, step))


@dataclass(frozen=True)
class ReaderSettings:
    """User-configurable display parameters for a reading session.

    Ranges are enforced by the controls that edit these values, not here.
    """
    font_size: int = 18
    font_family: str = "System"
    line_spacing: int = 8
    background_theme: BackgroundTheme = BackgroundTheme.DARK
    text_alignment: TextAlignment = TextAlignment.LEADING
    page_turn_style: PageTurnStyle = PageTurnStyle.SLIDE

    @property
    def colors(self) -> ThemeColors:
        return theme(self.background_theme)

    def changed_fields(self, other: "ReaderSettings") -> frozenset[str]:
        """Names of the fields whose value differs from ``other``."""
        return frozenset(
            f.name for f in fields(self)
            if getattr(self, f.name) != getattr(other, f.name)
        )

    def to_dict(self) -> dict:
        return {
            "font_size": self.font_size,
            "font_family": self.font_family,
            "line_spacing": self.line_spacing,
            "background_theme": self.background_theme.value,
            "text_alignment": self.text_alignment.value,
            "page_turn_style": self.page_turn_style.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReaderSettings":
        """Rebuild settings from their stored form.

        Missing or unreadable values fall back to the field default.
        """
        defaults = cls()
        converters = {
            "font_size": int,
            "font_family": str,
            "line_spacing": int,
            "background_theme": BackgroundTheme,
            "text_alignment": TextAlignment,
            "page_turn_style": PageTurnStyle,
        }
        allowed = {
            "font_size": value_range(*FONT_SIZE_RANGE),
            "font_family": FONT_FAMILIES,
            "line_spacing": value_range(*LINE_SPACING_RANGE),
        }
        values = {}
        for name, convert in converters.items():
            if name not in data:
                continue
            try:
                value = convert(data[name])
                if name in allowed and value not in allowed[name]:
                    raise ValueError(value)
                values[name] = value
            except (TypeError, ValueError):
                logger.warning(
                    "Valore non valido per '%s': %r, uso il default %r",
                    name, data[name], getattr(defaults, name),
                )
        return cls(**values)
