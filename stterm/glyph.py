"""Character cells, attribute flags and window mode flags."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum, IntFlag


class Attr(IntFlag):
    """Attributes of a character cell."""

    NULL = 0
    BOLD = 1 << 0
    FAINT = 1 << 1
    ITALIC = 1 << 2
    UNDERLINE = 1 << 3
    BLINK = 1 << 4
    REVERSE = 1 << 5
    INVISIBLE = 1 << 6
    STRUCK = 1 << 7
    WRAP = 1 << 8
    WIDE = 1 << 9
    WDUMMY = 1 << 10
    LIGA = 1 << 11
    BOLD_FAINT = (1 << 0) | (1 << 1)
    DIRTYUNDERLINE = 1 << 15


class WinMode(IntFlag):
    """State flags of the window that displays the terminal."""

    VISIBLE = 1 << 0
    FOCUSED = 1 << 1
    APPKEYPAD = 1 << 2
    MOUSEBTN = 1 << 3
    MOUSEMOTION = 1 << 4
    REVERSE = 1 << 5
    KBDLOCK = 1 << 6
    HIDE = 1 << 7
    APPCURSOR = 1 << 8
    MOUSESGR = 1 << 9
    EIGHTBIT = 1 << 10
    BLINK = 1 << 11
    FBLINK = 1 << 12
    FOCUS = 1 << 13
    MOUSEX10 = 1 << 14
    MOUSEMANY = 1 << 15
    BRCKTPASTE = 1 << 16
    NUMLOCK = 1 << 17
    MOUSE = (1 << 3) | (1 << 4) | (1 << 14) | (1 << 15)


class SelectionMode(IntEnum):
    IDLE = 0
    EMPTY = 1
    READY = 2


class SelectionType(IntEnum):
    REGULAR = 1
    RECTANGULAR = 2


class SelectionSnap(IntEnum):
    NONE = 0
    WORD = 1
    LINE = 2


_IGNORED_IN_COMPARE = int(Attr.WRAP | Attr.LIGA)


@dataclass(slots=True)
class Glyph:
    """One character cell: rune, attribute flags and colours."""

    u: int = 0x20
    mode: int = 0
    fg: int = 0
    bg: int = 0
    ustyle: int = 0
    ucolor: tuple[int, int, int] = (0, 0, 0)

    def copy(self) -> Glyph:
        """Return an independent copy of the cell."""
        return replace(self)

    def attrs_differ(self, other: Glyph) -> bool:
        """True when the cells cannot be drawn in one run."""
        mask = ~_IGNORED_IN_COMPARE
        return (
            (self.mode & mask) != (other.mode & mask)
            or self.fg != other.fg
            or self.bg != other.bg
        )


def truecolor(r: int, g: int, b: int) -> int:
    """Pack an RGB triple into a direct-colour value."""
    return (1 << 24) | (r << 16) | (g << 8) | b


def is_truecolor(color: int) -> bool:
    """True when ``color`` is a direct RGB colour rather than a palette index."""
    return bool(color & (1 << 24))