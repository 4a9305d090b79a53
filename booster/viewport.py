"""A scrollable, line-oriented view over a block of text."""

from __future__ import annotations

from booster.util import clamp

_LINE_DOWN_KEYS = frozenset({"down", "j"})
_LINE_UP_KEYS = frozenset({"up", "k"})
_PAGE_DOWN_KEYS = frozenset({"pgdown", " ", "space", "f"})
_PAGE_UP_KEYS = frozenset({"pgup", "b"})
_HALF_DOWN_KEYS = frozenset({"ctrl+d", "d"})
_HALF_UP_KEYS = frozenset({"ctrl+u", "u"})


class Viewport:
    """Shows ``height`` lines of its content, starting at ``y_offset``."""

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.width = width
        self.height = height
        self.y_offset = 0
        self._lines: list[str] = []

    def set_content(self, content: str) -> None:
        """Replace the content, keeping the offset inside the new bounds."""
        self._lines = content.replace("\r\n", "\n").split("\n")
        if self.y_offset > len(self._lines) - 1:
            self.goto_bottom()

    def total_line_count(self) -> int:
        """Number of lines in the content."""
        return len(self._lines)

    def _max_y_offset(self) -> int:
        return max(0, len(self._lines) - self.height)

    def at_top(self) -> bool:
        """Whether the first line is visible."""
        return self.y_offset <= 0

    def at_bottom(self) -> bool:
        """Whether the last line is visible."""
        return self.y_offset >= self._max_y_offset()

    def set_y_offset(self, offset: int) -> None:
        """Move to ``offset``, limited to the scrollable range."""
        self.y_offset = clamp(offset, 0, self._max_y_offset())

    def scroll_down(self, lines: int) -> None:
        """Scroll down by ``lines`` lines."""
        if self.at_bottom() or lines == 0 or not self._lines:
            return
        self.set_y_offset(self.y_offset + lines)

    def scroll_up(self, lines: int) -> None:
        """Scroll up by ``lines`` lines."""
        if self.at_top() or lines == 0 or not self._lines:
            return
        self.set_y_offset(self.y_offset - lines)

    def goto_top(self) -> None:
        """Jump to the first line."""
        self.set_y_offset(0)

    def goto_bottom(self) -> None:
        """Jump so that the last line is visible."""
        self.set_y_offset(self._max_y_offset())

    def scroll_percent(self) -> float:
        """How far down the view is, from 0.0 to 1.0."""
        total = len(self._lines)
        if self.height >= total:
            return 1.0
        fraction = self.y_offset / (total - self.height)
        return max(0.0, min(1.0, fraction))

    def handle_key(self, key: str) -> bool:
        """Apply a scrolling key; return whether the key was recognised."""
        if key in _LINE_DOWN_KEYS:
            self.scroll_down(1)
        elif key in _LINE_UP_KEYS:
            self.scroll_up(1)
        elif key in _PAGE_DOWN_KEYS:
            self.scroll_down(self.height)
        elif key in _PAGE_UP_KEYS:
            self.scroll_up(self.height)
        elif key in _HALF_DOWN_KEYS:
            self.scroll_down(self.height // 2)
        elif key in _HALF_UP_KEYS:
            self.scroll_up(self.height // 2)
        else:
            return False
        return True

    def view(self) -> str:
        """Render the visible lines, padded to the viewport height."""
        if self.height <= 0:
            return ""
        visible = self._lines[self.y_offset : self.y_offset + self.height]
        visible += [""] * (self.height - len(visible))
        if self.width > 0:
            visible = [line[: self.width] for line in visible]
        return "\n".join(visible)