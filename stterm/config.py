"""Settings of the terminal."""

from __future__ import annotations

from dataclasses import dataclass, field

_DEFAULT_COLOR_NAMES = {
    0: "#000000",
    1: "#cd0000",
    2: "#00cd00",
    3: "#cdcd00",
    4: "#0000ee",
    5: "#cd00cd",
    6: "#00cdcd",
    7: "#e5e5e5",
    8: "#7f7f7f",
    9: "#ff0000",
    10: "#00ff00",
    11: "#ffff00",
    12: "#5c5cff",
    13: "#ff00ff",
    14: "#00ffff",
    15: "#ffffff",
    256: "#cccccc",
    257: "#555555",
    258: "#e5e5e5",
    259: "#000000",
}


@dataclass
class Config:
    """Settings shared by the terminal, its tty and its window."""

    shell: str = "/bin/sh"
    utmp: str | None = None
    scroll: str | None = None
    stty_args: str = "stty raw pass8 nl -echo -iexten -cstopb 38400"
    vtiden: str = "\033[?6c"
    worddelimiters: str = " "
    allowaltscreen: bool = True
    allowwindowops: bool = False
    termname: str = "st-256color"
    tabspaces: int = 8
    defaultfg: int = 258
    defaultbg: int = 259
    defaultcs: int = 256
    defaultrcs: int = 257
    cursorshape: int = 2
    bellvolume: int = 0
    alpha: float = 1.0
    colornames: dict[int, str] = field(default_factory=lambda: dict(_DEFAULT_COLOR_NAMES))

    def __post_init__(self) -> None:
        if self.tabspaces < 1:
            raise ValueError(f"tabspaces must be positive, got {self.tabspaces}")

    def is_delimiter(self, rune: int) -> bool:
        """True when ``rune`` separates words for selection snapping."""
        return rune != 0 and chr(rune) in self.worddelimiters