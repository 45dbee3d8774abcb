"""Parsing of CSI and string escape sequences and of SGR attributes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .config import Config
from .glyph import Attr, Glyph, truecolor

log = logging.getLogger(__name__)

ESC_ARG_SIZE = 16
COLON_ARGS = 4
STR_ARG_SIZE = 16

_NUMBER = re.compile(rb"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_LONG_MAX = 2**63 - 1
_LONG_MIN = -(2**63)

_SGR_RESET = (
    Attr.BOLD | Attr.FAINT | Attr.ITALIC | Attr.UNDERLINE
    | Attr.BLINK | Attr.REVERSE | Attr.INVISIBLE | Attr.STRUCK
)


@dataclass
class CSISequence:
    """A parsed ``ESC [`` sequence."""

    buf: bytes = b""
    priv: bool = False
    args: list[int] = field(default_factory=list)
    colon_args: list[list[int]] = field(default_factory=list)
    mode: bytes = b"\0\0"


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def _strtol(buf: bytes, pos: int) -> tuple[int, int]:
    match = _NUMBER.match(buf, pos)
    if match is None:
        return 0, pos
    value = max(_LONG_MIN, min(_LONG_MAX, int(match.group(1))))
    return value, match.end()


def _byte_at(buf: bytes, pos: int) -> int:
    return buf[pos] if pos < len(buf) else 0


def _read_colon_args(buf: bytes, pos: int) -> tuple[list[int], int]:
    params = [-1] * COLON_ARGS
    count = 0
    while _byte_at(buf, pos) == ord(":") and count < COLON_ARGS:
        while _byte_at(buf, pos) == ord(":"):
            pos += 1
        value, pos = _strtol(buf, pos)
        params[count] = _to_int32(value)
        count += 1
    return params, pos


def parse_csi(buf: bytes) -> CSISequence:
    """Parse the bytes that follow ``ESC [`` up to and including the final byte."""
    buf = bytes(buf)
    seq = CSISequence(buf=buf)
    pos = 0
    if _byte_at(buf, 0) == ord("?"):
        seq.priv = True
        pos = 1
    sep = ord(";")
    while pos < len(buf):
        value, end = _strtol(buf, pos)
        if end == pos:
            value = 0
        elif value in (_LONG_MAX, _LONG_MIN):
            value = -1
        seq.args.append(_to_int32(value))
        colon, pos = _read_colon_args(buf, end)
        seq.colon_args.append(colon)
        if sep == ord(";") and _byte_at(buf, pos) == ord(":"):
            sep = ord(":")
        if _byte_at(buf, pos) != sep or len(seq.args) == ESC_ARG_SIZE:
            break
        pos += 1
    first = _byte_at(buf, pos)
    pos += 1
    second = buf[pos] if pos < len(buf) else 0
    seq.mode = bytes([first, second])
    return seq


def parse_str(buf: bytes) -> list[bytes]:
    """Split the body of a string sequence into at most 16 ``;``-separated arguments."""
    body = bytes(buf).split(b"\0", 1)[0]
    if not body:
        return []
    return body.split(b";")[:STR_ARG_SIZE]


def define_color(args: list[int], index: int) -> tuple[int | None, int]:
    """Read an extended colour (``38;5;n`` or ``38;2;r;g;b``) starting at ``args[index]``.

    Returns the colour, or None when it is invalid, and the index of the last
    argument consumed.
    """
    count = len(args)
    kind = args[index + 1] if index + 1 < count else 0
    if kind == 2:
        if index + 4 >= count:
            log.warning("erresc(38): Incorrect number of parameters (%d)", index)
            return None, index
        r, g, b = args[index + 2:index + 5]
        index += 4
        if not all(0 <= c <= 255 for c in (r, g, b)):
            log.warning("erresc: bad rgb color (%d,%d,%d)", r, g, b)
            return None, index
        return truecolor(r, g, b), index
    if kind == 5:
        if index + 2 >= count:
            log.warning("erresc(38): Incorrect number of parameters (%d)", index)
            return None, index
        index += 2
        if not 0 <= args[index] <= 255:
            log.warning("erresc: bad fgcolor %d", args[index])
            return None, index
        return args[index], index
    log.warning("erresc(38): gfx attr %d unknown", args[index])
    return None, index


def apply_sgr(attr: Glyph, args: list[int], colon_args: list[list[int]], config: Config) -> Glyph:
    """Return a copy of ``attr`` with the SGR parameters ``args`` applied."""
    result = attr.copy()
    i = 0
    while i < len(args):
        code = args[i]
        colon = colon_args[i] if i < len(colon_args) else [-1] * COLON_ARGS
        if code == 0:
            result.mode &= ~_SGR_RESET
            result.fg = config.defaultfg
            result.bg = config.defaultbg
            result.ustyle = -1
            result.ucolor = (-1, -1, -1)
        elif code == 1:
            result.mode |= Attr.BOLD
        elif code == 2:
            result.mode |= Attr.FAINT
        elif code == 3:
            result.mode |= Attr.ITALIC
        elif code == 4:
            result.ustyle = colon[0]
            if result.ustyle != 0:
                result.mode |= Attr.UNDERLINE
            else:
                result.mode &= ~Attr.UNDERLINE
            result.mode ^= Attr.DIRTYUNDERLINE
        elif code in (5, 6):
            result.mode |= Attr.BLINK
        elif code == 7:
            result.mode |= Attr.REVERSE
        elif code == 8:
            result.mode |= Attr.INVISIBLE
        elif code == 9:
            result.mode |= Attr.STRUCK
        elif code == 22:
            result.mode &= ~(Attr.BOLD | Attr.FAINT)
        elif code == 23:
            result.mode &= ~Attr.ITALIC
        elif code == 24:
            result.mode &= ~Attr.UNDERLINE
        elif code == 25:
            result.mode &= ~Attr.BLINK
        elif code == 27:
            result.mode &= ~Attr.REVERSE
        elif code == 28:
            result.mode &= ~Attr.INVISIBLE
        elif code == 29:
            result.mode &= ~Attr.STRUCK
        elif code in (38, 48):
            color, i = define_color(args, i)
            if color is not None:
                if code == 38:
                    result.fg = color
                else:
                    result.bg = color
        elif code == 39:
            result.fg = config.defaultfg
        elif code == 49:
            result.bg = config.defaultbg
        elif code == 58:
            result.ucolor = (colon[1], colon[2], colon[3])
            result.mode ^= Attr.DIRTYUNDERLINE
        elif code == 59:
            result.ucolor = (-1, -1, -1)
            result.mode ^= Attr.DIRTYUNDERLINE
        elif 30 <= code <= 37:
            result.fg = code - 30
        elif 40 <= code <= 47:
            result.bg = code - 40
        elif 90 <= code <= 97:
            result.fg = code - 90 + 8
        elif 100 <= code <= 107:
            result.bg = code - 100 + 8
        else:
            log.warning("erresc(default): gfx attr %d unknown", code)
        i += 1
    return result


def _escape_byte(byte: int) -> str:
    if 0x20 <= byte <= 0x7E:
        return chr(byte)
    if byte == 0x0A:
        return "(\\n)"
    if byte == 0x0D:
        return "(\\r)"
    if byte == 0x1B:
        return "(\\e)"
    return f"({byte:02x})"


def csi_dump(buf: bytes) -> str:
    """Render a CSI sequence readably for diagnostics."""
    return "ESC[" + "".join(_escape_byte(byte) for byte in bytes(buf))


def str_dump(kind: str, buf: bytes) -> str:
    """Render a string sequence readably for diagnostics."""
    parts = [f"ESC{kind}"]
    for byte in bytes(buf):
        if byte == 0:
            return "".join(parts)
        parts.append(_escape_byte(byte))
    parts.append("ESC\\")
    return "".join(parts)