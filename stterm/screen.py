"""Screen buffers, history, cursor and the editing operations on them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Protocol

from .codec import utf8_encode
from .config import Config
from .glyph import Attr, Glyph

HISTORY_SIZE = 2000

_VT100_GRAPHICS = dict(zip(range(0x41, 0x48), "↑↓→←█▚☃"))
_VT100_GRAPHICS[0x5F] = " "
_VT100_GRAPHICS.update(zip(range(0x60, 0x7F), "◆▒␉␌␍␊°±␤␋┘┐┌└┼⎺⎻─⎼⎽├┤┴┬│≤≥π≠£·"))


class TermMode(IntFlag):
    """Mode flags of the terminal."""

    WRAP = 1 << 0
    INSERT = 1 << 1
    ALTSCREEN = 1 << 2
    CRLF = 1 << 3
    ECHO = 1 << 4
    PRINT = 1 << 5
    UTF8 = 1 << 6


class CursorState(IntFlag):
    DEFAULT = 0
    WRAPNEXT = 1
    ORIGIN = 2


@dataclass
class Cursor:
    """Cursor position, its drawing attributes and its state flags."""

    attr: Glyph = field(default_factory=Glyph)
    x: int = 0
    y: int = 0
    state: int = 0

    def copy(self) -> Cursor:
        return Cursor(self.attr.copy(), self.x, self.y, self.state)


class _SelectionHook(Protocol):
    def selected(self, x: int, y: int) -> bool: ...

    def clear(self) -> None: ...

    def scroll(self, orig: int, n: int) -> None: ...


def _clamp(value: int, low: int, high: int) -> int:
    return low if value < low else high if value > high else value


class Screen:
    """The character grid of the terminal with its alternate screen and history."""

    def __init__(self, cols: int, rows: int, config: Config) -> None:
        self.config = config
        self.cols = 0
        self.rows = 0
        self.lines: list[list[Glyph]] = []
        self.alt: list[list[Glyph]] = []
        self.history: list[list[Glyph]] = [[] for _ in range(HISTORY_SIZE)]
        self.history_index = 0
        self.scroll = 0
        self.dirty: list[bool] = []
        self.tabs: list[bool] = []
        self.cursor = Cursor(Glyph(fg=config.defaultfg, bg=config.defaultbg))
        self.top = 0
        self.bot = 0
        self.mode = 0
        self.charsets = ["B"] * 4
        self.charset = 0
        self.icharset = 0
        self.selection: _SelectionHook | None = None
        self._saved = [Cursor(), Cursor()]
        self.resize(cols, rows)
        self.reset()

    # -- helpers -------------------------------------------------------

    def _blank(self) -> Glyph:
        return Glyph(fg=self.config.defaultfg, bg=self.config.defaultbg)

    def _selection_scroll(self, orig: int, n: int) -> None:
        if self.selection is not None:
            self.selection.scroll(orig, n)

    @property
    def _alt_index(self) -> int:
        return 1 if self.mode & TermMode.ALTSCREEN else 0

    # -- geometry ------------------------------------------------------

    def resize(self, cols: int, rows: int) -> None:
        """Change the grid size, keeping the cursor line on screen."""
        if cols < 1 or rows < 1:
            raise ValueError(f"cannot resize to {cols}x{rows}")
        old_cols = self.cols
        minrow = min(rows, self.rows)
        mincol = min(cols, old_cols)
        shift = max(0, self.cursor.y - rows + 1)

        def fit(line: list[Glyph]) -> list[Glyph]:
            if len(line) >= cols:
                return line[:cols]
            return line + [self._blank() for _ in range(cols - len(line))]

        def rebuild(screen: list[list[Glyph]]) -> list[list[Glyph]]:
            kept = [fit(line) for line in screen[shift:shift + rows]]
            return kept + [[self._blank() for _ in range(cols)] for _ in range(rows - len(kept))]

        self.lines = rebuild(self.lines)
        self.alt = rebuild(self.alt)
        self.dirty = [False] * rows

        for index, line in enumerate(self.history):
            if len(line) >= cols:
                self.history[index] = line[:cols]
                continue
            for _ in range(cols - len(line)):
                cell = self.cursor.attr.copy()
                cell.u = 0x20
                line.append(cell)

        tabs = self.tabs[:cols] + [False] * (cols - len(self.tabs))
        if cols > old_cols:
            last = next((i for i in range(old_cols - 1, 0, -1) if tabs[i]), 0)
            for i in range(last + self.config.tabspaces, cols, self.config.tabspaces):
                tabs[i] = True
        self.tabs = tabs

        self.cols = cols
        self.rows = rows
        self.set_scroll_region(0, rows - 1)
        self.move_to(self.cursor.x, self.cursor.y)
        for _ in range(2):
            if mincol < cols and minrow > 0:
                self.clear_region(mincol, 0, cols - 1, minrow - 1)
            if minrow < rows:
                self.clear_region(0, minrow, cols - 1, rows - 1)
            self.swap_screen()

    def reset(self) -> None:
        """Restore the power-on state: cursor, tabs, modes, charsets and both screens."""
        self.cursor = Cursor(Glyph(fg=self.config.defaultfg, bg=self.config.defaultbg))
        self.tabs = [False] * self.cols
        for i in range(self.config.tabspaces, self.cols, self.config.tabspaces):
            self.tabs[i] = True
        self.top = 0
        self.bot = self.rows - 1
        self.mode = int(TermMode.WRAP | TermMode.UTF8)
        self.charsets = ["B"] * 4
        self.charset = 0
        for _ in range(2):
            self.move_to(0, 0)
            self.save_cursor()
            self.clear_region(0, 0, self.cols - 1, self.rows - 1)
            self.swap_screen()

    # -- lines ---------------------------------------------------------

    def line(self, y: int) -> list[Glyph]:
        """Return the visible line ``y``, taking the scrollback offset into account."""
        if y < self.scroll:
            index = (y + self.history_index - self.scroll + HISTORY_SIZE + 1) % HISTORY_SIZE
            return self.history[index]
        return self.lines[y - self.scroll]

    def line_length(self, y: int) -> int:
        """Length of line ``y`` without trailing blanks, or full width when it wraps."""
        line = self.line(y)
        length = self.cols
        if line[length - 1].mode & Attr.WRAP:
            return length
        while length > 0 and line[length - 1].u == 0x20:
            length -= 1
        return length

    # -- dirtiness -----------------------------------------------------

    def set_dirty(self, top: int, bot: int) -> None:
        top = _clamp(top, 0, self.rows - 1)
        bot = _clamp(bot, 0, self.rows - 1)
        for i in range(top, bot + 1):
            self.dirty[i] = True

    def full_dirty(self) -> None:
        self.set_dirty(0, self.rows - 1)

    def attr_set(self, attr: int) -> bool:
        """True when any cell outside the last row and column carries ``attr``."""
        return any(
            self.lines[i][j].mode & attr
            for i in range(self.rows - 1)
            for j in range(self.cols - 1)
        )

    def set_dirty_attr(self, attr: int) -> None:
        for i in range(self.rows - 1):
            if any(self.lines[i][j].mode & attr for j in range(self.cols - 1)):
                self.set_dirty(i, i)

    # -- editing -------------------------------------------------------

    def clear_region(self, x1: int, y1: int, x2: int, y2: int) -> None:
        """Blank a rectangle with the cursor colours."""
        if x1 > x2:
            x1, x2 = x2, x1
        if y1 > y2:
            y1, y2 = y2, y1
        x1 = _clamp(x1, 0, self.cols - 1)
        x2 = _clamp(x2, 0, self.cols - 1)
        y1 = _clamp(y1, 0, self.rows - 1)
        y2 = _clamp(y2, 0, self.rows - 1)
        attr = self.cursor.attr
        for y in range(y1, y2 + 1):
            self.dirty[y] = True
            for x in range(x1, x2 + 1):
                if self.selection is not None and self.selection.selected(x, y):
                    self.selection.clear()
                cell = self.lines[y][x]
                cell.fg = attr.fg
                cell.bg = attr.bg
                cell.mode = 0
                cell.u = 0x20

    def move_to(self, x: int, y: int) -> None:
        """Move the cursor, clamped to the screen or to the scroll region in origin mode."""
        if self.cursor.state & CursorState.ORIGIN:
            miny, maxy = self.top, self.bot
        else:
            miny, maxy = 0, self.rows - 1
        self.cursor.state &= ~CursorState.WRAPNEXT
        self.cursor.x = _clamp(x, 0, self.cols - 1)
        self.cursor.y = _clamp(y, miny, maxy)

    def move_to_absolute(self, x: int, y: int) -> None:
        """Move the cursor with ``y`` relative to the scroll region in origin mode."""
        offset = self.top if self.cursor.state & CursorState.ORIGIN else 0
        self.move_to(x, y + offset)

    def scroll_up(self, orig: int, n: int, copy_history: bool) -> None:
        n = _clamp(n, 0, self.bot - orig + 1)
        if copy_history:
            self.history_index = (self.history_index + 1) % HISTORY_SIZE
            index = self.history_index
            self.history[index], self.lines[orig] = self.lines[orig], self.history[index]
        if 0 < self.scroll < HISTORY_SIZE:
            self.scroll = min(self.scroll + n, HISTORY_SIZE - 1)
        self.clear_region(0, orig, self.cols - 1, orig + n - 1)
        self.set_dirty(orig + n, self.bot)
        region = self.lines[orig:self.bot + 1]
        self.lines[orig:self.bot + 1] = region[n:] + region[:n]
        if self.scroll == 0:
            self._selection_scroll(orig, -n)

    def scroll_down(self, orig: int, n: int, copy_history: bool) -> None:
        n = _clamp(n, 0, self.bot - orig + 1)
        if copy_history:
            self.history_index = (self.history_index - 1) % HISTORY_SIZE
            index = self.history_index
            self.history[index], self.lines[self.bot] = self.lines[self.bot], self.history[index]
        self.set_dirty(orig, self.bot - n)
        self.clear_region(0, self.bot - n + 1, self.cols - 1, self.bot)
        region = self.lines[orig:self.bot + 1]
        split = len(region) - n
        self.lines[orig:self.bot + 1] = region[split:] + region[:split]
        if self.scroll == 0:
            self._selection_scroll(orig, n)

    def kscroll_up(self, n: int) -> None:
        """Scroll the view back into history by ``n`` lines (negative: rows + n)."""
        if n < 0:
            n = self.rows + n
        if self.scroll <= HISTORY_SIZE - n:
            self.scroll += n
            self._selection_scroll(0, n)
            self.full_dirty()

    def kscroll_down(self, n: int) -> None:
        """Scroll the view forward towards the live screen."""
        if n < 0:
            n = self.rows + n
        n = min(n, self.scroll)
        if self.scroll > 0:
            self.scroll -= n
            self._selection_scroll(0, -n)
            self.full_dirty()

    def delete_chars(self, n: int) -> None:
        x, y = self.cursor.x, self.cursor.y
        n = _clamp(n, 0, self.cols - x)
        line = self.lines[y]
        line[x:] = line[x + n:] + line[x:x + n]
        self.clear_region(self.cols - n, y, self.cols - 1, y)

    def insert_blanks(self, n: int) -> None:
        x, y = self.cursor.x, self.cursor.y
        n = _clamp(n, 0, self.cols - x)
        line = self.lines[y]
        line[x:] = line[self.cols - n:] + line[x:self.cols - n]
        self.clear_region(x, y, x + n - 1, y)

    def insert_blank_lines(self, n: int) -> None:
        if self.top <= self.cursor.y <= self.bot:
            self.scroll_down(self.cursor.y, n, False)

    def delete_lines(self, n: int) -> None:
        if self.top <= self.cursor.y <= self.bot:
            self.scroll_up(self.cursor.y, n, False)

    def set_scroll_region(self, top: int, bot: int) -> None:
        top = _clamp(top, 0, self.rows - 1)
        bot = _clamp(bot, 0, self.rows - 1)
        if top > bot:
            top, bot = bot, top
        self.top = top
        self.bot = bot

    def swap_screen(self) -> None:
        self.lines, self.alt = self.alt, self.lines
        self.mode ^= TermMode.ALTSCREEN
        self.full_dirty()

    def save_cursor(self) -> None:
        self._saved[self._alt_index] = self.cursor.copy()

    def restore_cursor(self) -> None:
        saved = self._saved[self._alt_index]
        self.cursor = saved.copy()
        self.move_to(saved.x, saved.y)

    def put_tab(self, n: int) -> None:
        """Move the cursor ``n`` tab stops forward, or backward when negative."""
        x = self.cursor.x
        if n > 0:
            while x < self.cols and n:
                n -= 1
                x += 1
                while x < self.cols and not self.tabs[x]:
                    x += 1
        elif n < 0:
            while x > 0 and n:
                n += 1
                x -= 1
                while x > 0 and not self.tabs[x]:
                    x -= 1
        self.cursor.x = _clamp(x, 0, self.cols - 1)

    def new_line(self, first_col: bool) -> None:
        y = self.cursor.y
        if y == self.bot:
            self.scroll_up(self.top, 1, True)
        else:
            y += 1
        self.move_to(0 if first_col else self.cursor.x, y)

    def set_char(self, rune: int, attr: Glyph, x: int, y: int) -> None:
        """Store ``rune`` with ``attr`` at (x, y), translating DEC line graphics."""
        if self.charsets[self.charset] == "0" and rune in _VT100_GRAPHICS:
            rune = ord(_VT100_GRAPHICS[rune])
        line = self.lines[y]
        cell = line[x]
        if cell.mode & Attr.WIDE:
            if x + 1 < self.cols:
                line[x + 1].u = 0x20
                line[x + 1].mode &= ~Attr.WDUMMY
        elif cell.mode & Attr.WDUMMY:
            line[x - 1].u = 0x20
            line[x - 1].mode &= ~Attr.WIDE
        self.dirty[y] = True
        new = attr.copy()
        new.u = rune
        line[x] = new

    # -- dumping -------------------------------------------------------

    def dump_line(self, y: int) -> bytes:
        """Return the text of screen line ``y`` as UTF-8 with a trailing newline."""
        line = self.lines[y]
        end = min(self.line_length(y), self.cols) - 1
        if end != 0 or line[0].u != 0x20:
            text = b"".join(utf8_encode(cell.u) for cell in line[:end + 1])
        else:
            text = b""
        return text + b"\n"

    def dump(self) -> bytes:
        return b"".join(self.dump_line(y) for y in range(self.rows))