"""Mouse selection over the screen and its scrollback."""

from __future__ import annotations

from dataclasses import dataclass

from .codec import utf8_encode
from .glyph import Attr, SelectionMode, SelectionSnap, SelectionType
from .screen import Screen, TermMode

_SPACE = 0x20


@dataclass
class _Point:
    x: int = 0
    y: int = 0


class Selection:
    """A selection kept in original (ob/oe) and normalized (nb/ne) coordinates."""

    def __init__(self, screen: Screen) -> None:
        self.screen = screen
        self.mode = SelectionMode.IDLE
        self.type = SelectionType.REGULAR
        self.snap_kind = SelectionSnap.NONE
        self.ob = _Point(-1, 0)
        self.oe = _Point()
        self.nb = _Point()
        self.ne = _Point()
        self.alt = False
        screen.selection = self

    def _on_alt_screen(self) -> bool:
        return bool(self.screen.mode & TermMode.ALTSCREEN)

    def start(self, col: int, row: int, snap: int) -> None:
        """Begin a selection at (col, row), snapping to words or lines if asked."""
        self.clear()
        self.mode = SelectionMode.EMPTY
        self.type = SelectionType.REGULAR
        self.alt = self._on_alt_screen()
        self.snap_kind = snap
        self.ob = _Point(col, row)
        self.oe = _Point(col, row)
        self.normalize()
        if self.snap_kind != SelectionSnap.NONE:
            self.mode = SelectionMode.READY
        self.screen.set_dirty(self.nb.y, self.ne.y)

    def extend(self, col: int, row: int, type: int, done: bool) -> None:
        """Move the end of the selection; ``done`` finishes it."""
        if self.mode == SelectionMode.IDLE:
            return
        if done and self.mode == SelectionMode.EMPTY:
            self.clear()
            return
        old_ey, old_ex = self.oe.y, self.oe.x
        old_sby, old_sey = self.nb.y, self.ne.y
        old_type = self.type

        self.oe = _Point(col, row)
        self.normalize()
        self.type = type

        if (
            old_ey != self.oe.y
            or old_ex != self.oe.x
            or old_type != self.type
            or self.mode == SelectionMode.EMPTY
        ):
            self.screen.set_dirty(min(self.nb.y, old_sby), max(self.ne.y, old_sey))
        self.mode = SelectionMode.IDLE if done else SelectionMode.READY

    def normalize(self) -> None:
        """Recompute the ordered, snapped coordinates from the original ones."""
        ob, oe = self.ob, self.oe
        if self.type == SelectionType.REGULAR and ob.y != oe.y:
            nb_x = ob.x if ob.y < oe.y else oe.x
            ne_x = oe.x if ob.y < oe.y else ob.x
        else:
            nb_x = min(ob.x, oe.x)
            ne_x = max(ob.x, oe.x)
        nb_y = min(ob.y, oe.y)
        ne_y = max(ob.y, oe.y)

        self.nb = _Point(*self.snap(nb_x, nb_y, -1))
        self.ne = _Point(*self.snap(ne_x, ne_y, +1))

        if self.type == SelectionType.RECTANGULAR:
            return
        length = self.screen.line_length(self.nb.y)
        if length < self.nb.x:
            self.nb.x = length
        if self.screen.line_length(self.ne.y) <= self.ne.x:
            self.ne.x = self.screen.cols - 1

    def selected(self, x: int, y: int) -> bool:
        """True when cell (x, y) lies inside the selection."""
        if (
            self.mode == SelectionMode.EMPTY
            or self.ob.x == -1
            or self.alt != self._on_alt_screen()
        ):
            return False
        nb, ne = self.nb, self.ne
        if self.type == SelectionType.RECTANGULAR:
            return nb.y <= y <= ne.y and nb.x <= x <= ne.x
        return (
            nb.y <= y <= ne.y
            and (y != nb.y or x >= nb.x)
            and (y != ne.y or x <= ne.x)
        )

    def snap(self, x: int, y: int, direction: int) -> tuple[int, int]:
        """Extend (x, y) in ``direction`` to a word or line boundary."""
        screen = self.screen
        cols, rows = screen.cols, screen.rows
        if self.snap_kind == SelectionSnap.WORD:
            is_delim = screen.config.is_delimiter
            prev = screen.line(y)[x]
            prev_delim = is_delim(prev.u)
            while True:
                newx = x + direction
                newy = y
                if not 0 <= newx <= cols - 1:
                    newy += direction
                    newx = (newx + cols) % cols
                    if not 0 <= newy <= rows - 1:
                        break
                    xt, yt = (x, y) if direction > 0 else (newx, newy)
                    if not screen.line(yt)[xt].mode & Attr.WRAP:
                        break
                if newx >= screen.line_length(newy):
                    break
                cell = screen.line(newy)[newx]
                delim = is_delim(cell.u)
                if not cell.mode & Attr.WDUMMY and (
                    delim != prev_delim or (delim and cell.u != prev.u)
                ):
                    break
                x, y = newx, newy
                prev, prev_delim = cell, delim
        elif self.snap_kind == SelectionSnap.LINE:
            x = 0 if direction < 0 else cols - 1
            if direction < 0:
                while y > 0 and screen.line(y - 1)[cols - 1].mode & Attr.WRAP:
                    y -= 1
            elif direction > 0:
                while y < rows - 1 and screen.line(y)[cols - 1].mode & Attr.WRAP:
                    y += 1
        return x, y

    def text(self) -> str | None:
        """Return the selected text, or None when nothing is selected."""
        if self.ob.x == -1:
            return None
        screen = self.screen
        out = bytearray()
        for y in range(self.nb.y, self.ne.y + 1):
            length = screen.line_length(y)
            if length == 0:
                out += b"\n"
                continue
            line = screen.line(y)
            if self.type == SelectionType.RECTANGULAR:
                first = self.nb.x
                lastx = self.ne.x
            else:
                first = self.nb.x if self.nb.y == y else 0
                lastx = self.ne.x if self.ne.y == y else screen.cols - 1
            last = min(lastx, length - 1)
            while last >= first and line[last].u == _SPACE:
                last -= 1
            for cell in line[first:last + 1]:
                if not cell.mode & Attr.WDUMMY:
                    out += utf8_encode(cell.u)
            wraps = last >= 0 and bool(line[last].mode & Attr.WRAP)
            if (y < self.ne.y or lastx >= length) and (
                not wraps or self.type == SelectionType.RECTANGULAR
            ):
                out += b"\n"
        return out.decode("utf-8", errors="replace")

    def clear(self) -> None:
        """Drop the selection and mark its lines for redraw."""
        if self.ob.x == -1:
            return
        self.mode = SelectionMode.IDLE
        self.ob.x = -1
        self.screen.set_dirty(self.nb.y, self.ne.y)

    def scroll(self, orig: int, n: int) -> None:
        """Follow a scroll of the lines from ``orig`` by ``n`` rows."""
        if self.ob.x == -1 or self.alt != self._on_alt_screen():
            return
        screen = self.screen
        begin_inside = orig <= self.nb.y <= screen.bot
        end_inside = orig <= self.ne.y <= screen.bot
        if begin_inside != end_inside:
            self.clear()
        elif begin_inside:
            self.ob.y += n
            self.oe.y += n
            if (
                self.ob.y < screen.top
                or self.ob.y > screen.bot
                or self.oe.y < screen.top
                or self.oe.y > screen.bot
            ):
                self.clear()
            else:
                self.normalize()