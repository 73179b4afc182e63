"""A flow layout: items placed left to right, wrapping onto new lines as needed."""

from __future__ import annotations

from dataclasses import dataclass

# Spacing and margin used when none is given (a negative value asks for these).
DEFAULT_SPACING = 6
DEFAULT_MARGIN = 9


@dataclass(frozen=True)
class Rect:
    """An integer rectangle; right and bottom are inclusive edges."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width - 1

    @property
    def bottom(self) -> int:
        return self.y + self.height - 1

    def adjusted(self, dx1: int, dy1: int, dx2: int, dy2: int) -> "Rect":
        """Return a rectangle with each edge moved by the given amounts."""
        return Rect(
            self.x + dx1,
            self.y + dy1,
            self.width - dx1 + dx2,
            self.height - dy1 + dy2,
        )


@dataclass
class LayoutItem:
    """An item in a flow layout: its preferred size and its placed geometry."""

    width: int
    height: int
    geometry: Rect | None = None

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


class FlowLayout:
    """Arranges items in rows, wrapping to the next row when one is full."""

    def __init__(self, margin: int = -1, h_spacing: int = -1, v_spacing: int = -1) -> None:
        self.margin = margin if margin >= 0 else DEFAULT_MARGIN
        self._h_space = h_spacing
        self._v_space = v_spacing
        self.items: list[LayoutItem] = []
        self.geometry: Rect | None = None

    @property
    def horizontal_spacing(self) -> int:
        return self._h_space if self._h_space >= 0 else DEFAULT_SPACING

    @property
    def vertical_spacing(self) -> int:
        return self._v_space if self._v_space >= 0 else DEFAULT_SPACING

    def add_item(self, width: int, height: int) -> LayoutItem:
        """Append an item with the given preferred size and return it."""
        item = LayoutItem(width, height)
        self.items.append(item)
        return item

    def count(self) -> int:
        """Return the number of items."""
        return len(self.items)

    def take_at(self, index: int) -> LayoutItem:
        """Remove and return the item at index; raises IndexError if out of range."""
        if not 0 <= index < len(self.items):
            raise IndexError(index)
        return self.items.pop(index)

    def has_height_for_width(self) -> bool:
        return True

    def height_for_width(self, width: int) -> int:
        """Return the height the items need when laid out in the given width."""
        return self._do_layout(Rect(0, 0, width, 0), test_only=True)

    def set_geometry(self, rect: Rect) -> None:
        """Lay the items out inside rect, setting each item's geometry."""
        self.geometry = rect
        self._do_layout(rect, test_only=False)

    def minimum_size(self) -> tuple[int, int]:
        """Return the largest item size plus the margins."""
        width = max((item.width for item in self.items), default=0)
        height = max((item.height for item in self.items), default=0)
        return width + 2 * self.margin, height + 2 * self.margin

    def size_hint(self) -> tuple[int, int]:
        return self.minimum_size()

    def _do_layout(self, rect: Rect, test_only: bool) -> int:
        m = self.margin
        effective = rect.adjusted(m, m, -m, -m)
        x = effective.x
        y = effective.y
        line_height = 0
        space_x = self.horizontal_spacing
        space_y = self.vertical_spacing

        for item in self.items:
            next_x = x + item.width + space_x
            if next_x - space_x > effective.right and line_height > 0:
                x = effective.x
                y = y + line_height + space_y
                next_x = x + item.width + space_x
                line_height = 0

            if not test_only:
                item.geometry = Rect(x, y, item.width, item.height)

            x = next_x
            line_height = max(line_height, item.height)
        return y + line_height - rect.y + m