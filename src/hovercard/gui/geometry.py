"""Placement of the preview card relative to its anchor."""

from dataclasses import dataclass

DEFAULT_GAP = 5
DEFAULT_EDGE_MARGIN = 10


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle; right and bottom are exclusive."""

    x: int
    y: int
    width: int
    height: int

    @property
    def left(self) -> int:
        return self.x

    @property
    def top(self) -> int:
        return self.y

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(frozen=True)
class Size:
    width: int
    height: int


def compute_card_position(
    anchor: Rect,
    viewport: Rect,
    card: Size,
    gap: int = DEFAULT_GAP,
    margin: int = DEFAULT_EDGE_MARGIN,
) -> tuple[int, int]:
    """Get the top-left corner for a card shown next to ``anchor``.

    All rectangles share one coordinate system; ``viewport`` is the visible
    part of it. The card goes below the anchor, left-aligned. It flips above
    the anchor if it would run past the bottom of the viewport, and shifts
    left if it would run past the right edge. The result is never closer than
    ``margin`` to the viewport's top-left corner.
    """
    top = anchor.bottom + gap
    left = anchor.left

    if top + card.height > viewport.bottom:
        top = anchor.top - card.height - gap

    if left + card.width > viewport.right:
        left = viewport.right - card.width - margin

    top = max(viewport.top + margin, top)
    left = max(viewport.left + margin, left)
    return left, top
