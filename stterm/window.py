"""Headless model of the window that displays the terminal."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import Config
from .glyph import WinMode

_HEX_NAME = re.compile(r"#([0-9a-fA-F]+)")
_RGB_NAME = re.compile(r"rgb:([0-9a-fA-F]{1,4})/([0-9a-fA-F]{1,4})/([0-9a-fA-F]{1,4})")


def _six_to_16bit(level: int) -> int:
    return 0 if level == 0 else 0x3737 + 0x2828 * level


def _parse_color(name: str) -> tuple[int, int, int]:
    """Parse ``#rgb``-style or ``rgb:r/g/b`` colour names into 16-bit components."""
    if match := _HEX_NAME.fullmatch(name):
        digits = match.group(1)
        if len(digits) % 3 or not 3 <= len(digits) <= 12:
            raise ValueError(f"invalid color name: {name!r}")
        width = len(digits) // 3
        parts = (digits[i:i + width] for i in range(0, len(digits), width))
        return tuple(int(part, 16) << (16 - 4 * width) for part in parts)
    if match := _RGB_NAME.fullmatch(name):
        return tuple(
            int(part, 16) * 0xFFFF // ((1 << (4 * len(part))) - 1) for part in match.groups()
        )
    raise ValueError(f"invalid color name: {name!r}")


@dataclass
class Window:
    """Window state: modes, titles, cursor style, selections and colours."""

    config: Config = field(default_factory=Config)
    default_title: str = "st"
    on_redraw: Callable[[], None] | None = None
    mode: int = int(WinMode.NUMLOCK)
    cursor: int = field(init=False, default=0)
    title: str = field(init=False, default="")
    icon_title: str = field(init=False, default="")
    urgent: bool = field(init=False, default=False)
    bell_count: int = field(init=False, default=0)
    primary: str | None = field(init=False, default=None)
    clipboard: str | None = field(init=False, default=None)
    pointer_motion: bool = field(init=False, default=False)
    colors: list[tuple[int, int, int]] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        self.set_cursor(self.config.cursorshape)
        self.title = self.icon_title = self.default_title
        self.load_colors()

    def set_mode(self, set: bool, flags: int) -> None:
        """Set or clear mode flags; request a redraw when reverse video changes."""
        old = self.mode
        self.mode = self.mode | flags if set else self.mode & ~flags
        if (old ^ self.mode) & WinMode.REVERSE and self.on_redraw is not None:
            self.on_redraw()

    def is_set(self, flags: int) -> bool:
        return bool(self.mode & flags)

    def set_cursor(self, style: int) -> None:
        """Choose the cursor style 0..7."""
        if not 0 <= style <= 7:
            raise ValueError(f"unknown cursor style {style}")
        self.cursor = style

    def set_title(self, title: str | None) -> None:
        self.title = title or self.default_title

    def set_icon_title(self, title: str | None) -> None:
        self.icon_title = title or self.default_title

    def bell(self) -> None:
        """Mark the window urgent when unfocused and ring when the volume allows."""
        if not self.is_set(WinMode.FOCUSED):
            self.urgent = True
        if self.config.bellvolume:
            self.bell_count += 1

    def set_selection(self, text: str | None) -> None:
        if text is not None:
            self.primary = text

    def clip_copy(self) -> None:
        """Copy the primary selection to the clipboard."""
        self.clipboard = self.primary

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.colors):
            raise IndexError(f"color index {index} out of range")

    def get_color(self, index: int) -> tuple[int, int, int]:
        """Return the 8-bit RGB components of a palette entry."""
        self._check_index(index)
        return tuple(component >> 8 for component in self.colors[index])

    def _default_color(self, index: int) -> tuple[int, int, int]:
        if 16 <= index <= 255:
            if index < 6 * 6 * 6 + 16:
                offset = index - 16
                return (
                    _six_to_16bit((offset // 36) % 6),
                    _six_to_16bit((offset // 6) % 6),
                    _six_to_16bit(offset % 6),
                )
            grey = 0x0808 + 0x0A0A * (index - (6 * 6 * 6 + 16))
            return grey, grey, grey
        name = self.config.colornames.get(index)
        if name is None:
            raise ValueError(f"could not allocate color {index}")
        return _parse_color(name)

    def set_color_name(self, index: int, name: str | None) -> None:
        """Set a palette entry by name, or restore its default when ``name`` is None."""
        self._check_index(index)
        self.colors[index] = self._default_color(index) if name is None else _parse_color(name)

    def load_colors(self) -> None:
        """Reset the whole palette to its defaults."""
        count = max(max(self.config.colornames, default=-1) + 1, 256)
        self.colors = [self._default_color(index) for index in range(count)]

    def set_pointer_motion(self, set: bool) -> None:
        self.pointer_motion = bool(set)