"""Core of a VT100/xterm-compatible terminal emulator: screen, escape sequences, selection and tty."""

__version__ = "0.1.0"
__all__ = [
    "codec",
    "config",
    "csi",
    "glyph",
    "screen",
    "selection",
    "terminal",
    "tty",
    "window",
]