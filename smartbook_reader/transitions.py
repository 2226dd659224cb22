"""Page transitions - map taps and swipes to navigation for each turn style."""

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

from smartbook_reader.navigator import ReaderNavigator
from smartbook_reader.settings import PageTurnStyle, ReaderSettings

TRANSITION_REGISTRY: dict[PageTurnStyle, type["PageTransition"]] = {}

# Tap zones as fractions of the page width
EDGE_TAP_ZONE = 0.25

# Minimum horizontal drag, in points, recognised as a swipe
SWIPE_MIN_DISTANCE = 50
FADE_SWIPE_THRESHOLD = 80


class TransitionAction(str, Enum):
    PREVIOUS_PAGE = "previous_page"
    NEXT_PAGE = "next_page"
    TOGGLE_CONTROLS = "toggle_controls"
    NONE = "none"


def register_transition(style: PageTurnStyle):
    """Decorator to register a transition class for a page-turn style."""
    def decorator(cls):
        TRANSITION_REGISTRY[style] = cls
        return cls
    return decorator


def get_transition(
    style: PageTurnStyle,
    navigator: ReaderNavigator,
    on_toggle_controls: Optional[Callable[[], None]] = None,
) -> "PageTransition":
    """Instantiate the transition for a page-turn style."""
    try:
        cls = TRANSITION_REGISTRY[PageTurnStyle(style)]
    except (KeyError, ValueError):
        raise ValueError(f"Stile di pagina sconosciuto '{style}'") from None
    return cls(navigator, on_toggle_controls)


def transition_for(
    settings: ReaderSettings,
    navigator: ReaderNavigator,
    on_toggle_controls: Optional[Callable[[], None]] = None,
) -> "PageTransition":
    return get_transition(settings.page_turn_style, navigator, on_toggle_controls)


def ease_in_out(t: float) -> float:
    """Cosine ease-in-out over [0, 1]."""
    t = min(max(t, 0.0), 1.0)
    return 0.5 - math.cos(math.pi * t) / 2


class PageTransition(ABC):
    """Turns user gestures into navigator calls for one page-turn style.

    Holds no reading state: the navigator owns the page list and current index.
    """

    def __init__(
        self,
        navigator: ReaderNavigator,
        on_toggle_controls: Optional[Callable[[], None]] = None,
    ):
        self.navigator = navigator
        self.on_toggle_controls = on_toggle_controls

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def duration(self) -> float:
        """Length of the page-turn animation in seconds."""
        ...

    @abstractmethod
    def tap_action(self, x: float, width: float, controls_visible: bool) -> TransitionAction:
        ...

    @abstractmethod
    def swipe_action(self, dx: float, dy: float) -> TransitionAction:
        ...

    def progress_at(self, elapsed: float) -> float:
        """Eased animation progress after ``elapsed`` seconds, in [0, 1]."""
        if self.duration <= 0:
            return 1.0
        return ease_in_out(elapsed / self.duration)

    def handle_tap(self, x: float, width: float, controls_visible: bool = False) -> TransitionAction:
        return self.perform(self.tap_action(x, width, controls_visible))

    def handle_swipe(self, dx: float, dy: float) -> TransitionAction:
        return self.perform(self.swipe_action(dx, dy))

    def perform(self, action: TransitionAction) -> TransitionAction:
        if action == TransitionAction.PREVIOUS_PAGE:
            self.navigator.previous_page()
        elif action == TransitionAction.NEXT_PAGE:
            self.navigator.next_page()
        elif action == TransitionAction.TOGGLE_CONTROLS and self.on_toggle_controls:
            self.on_toggle_controls()
        return action

    @staticmethod
    def _zone_action(x: float, width: float) -> TransitionAction:
        if width <= 0:
            return TransitionAction.NONE
        if x < width * EDGE_TAP_ZONE:
            return TransitionAction.PREVIOUS_PAGE
        if x > width * (1 - EDGE_TAP_ZONE):
            return TransitionAction.NEXT_PAGE
        return TransitionAction.TOGGLE_CONTROLS

    @staticmethod
    def _horizontal_swipe(dx: float, dy: float, threshold: float) -> TransitionAction:
        if abs(dx) <= abs(dy) or abs(dx) < threshold:
            return TransitionAction.NONE
        # Dragging the page to the left reveals the next one
        return TransitionAction.NEXT_PAGE if dx < 0 else TransitionAction.PREVIOUS_PAGE


@register_transition(PageTurnStyle.SLIDE)
class SlideTransition(PageTransition):
    """Horizontal paging; the whole page is a single tap target."""

    @property
    def name(self) -> str:
        return "Scorrimento"

    @property
    def duration(self) -> float:
        return 0.3

    def tap_action(self, x: float, width: float, controls_visible: bool) -> TransitionAction:
        if controls_visible:
            return TransitionAction.NONE
        return TransitionAction.TOGGLE_CONTROLS

    def swipe_action(self, dx: float, dy: float) -> TransitionAction:
        return self._horizontal_swipe(dx, dy, SWIPE_MIN_DISTANCE)


@register_transition(PageTurnStyle.FADE)
class FadeTransition(PageTransition):
    """Cross-fade between pages, turned by edge taps or a long swipe."""

    @property
    def name(self) -> str:
        return "Dissolvenza"

    @property
    def duration(self) -> float:
        return 0.4

    def tap_action(self, x: float, width: float, controls_visible: bool) -> TransitionAction:
        if controls_visible:
            return TransitionAction.NONE
        return self._zone_action(x, width)

    def swipe_action(self, dx: float, dy: float) -> TransitionAction:
        if abs(dx) <= abs(dy) or abs(dx) <= FADE_SWIPE_THRESHOLD:
            return TransitionAction.NONE
        return TransitionAction.NEXT_PAGE if dx < 0 else TransitionAction.PREVIOUS_PAGE


@register_transition(PageTurnStyle.CURL)
class CurlTransition(PageTransition):
    """Page curl; edge taps turn pages even while the controls are shown."""

    @property
    def name(self) -> str:
        return "Arricciatura"

    @property
    def duration(self) -> float:
        return 0.5

    def tap_action(self, x: float, width: float, controls_visible: bool) -> TransitionAction:
        return self._zone_action(x, width)

    def swipe_action(self, dx: float, dy: float) -> TransitionAction:
        return self._horizontal_swipe(dx, dy, SWIPE_MIN_DISTANCE)
