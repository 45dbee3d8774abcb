"""UTF-8 and base64 decoding helpers used by the terminal."""

from __future__ import annotations

UTF_INVALID = 0xFFFD
UTF_SIZE = 4

_UTF_BYTE = (0x80, 0x00, 0xC0, 0xE0, 0xF0)
_UTF_MASK = (0xC0, 0x80, 0xE0, 0xF0, 0xF8)
_UTF_MIN = (0, 0, 0x80, 0x800, 0x10000)
_UTF_MAX = (0x10FFFF, 0x7F, 0x7FF, 0xFFFF, 0x10FFFF)

_BASE64_ALPHABET = b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_DIGITS = {char: value for value, char in enumerate(_BASE64_ALPHABET)}
_BASE64_DIGITS[ord("=")] = -1


def _decode_byte(byte: int) -> tuple[int, int]:
    """Return the payload bits of a byte and its kind (0 = continuation)."""
    for kind, (mask, marker) in enumerate(zip(_UTF_MASK, _UTF_BYTE)):
        if byte & mask == marker:
            return byte & ~mask & 0xFF, kind
    return 0, len(_UTF_MASK)


def utf8_validate(rune: int, size: int) -> tuple[int, int]:
    """Replace a rune that is out of range for ``size`` bytes; return it and its encoded length."""
    if not _UTF_MIN[size] <= rune <= _UTF_MAX[size] or 0xD800 <= rune <= 0xDFFF:
        rune = UTF_INVALID
    length = 1
    while rune > _UTF_MAX[length]:
        length += 1
    return rune, length


def utf8_decode(data: bytes) -> tuple[int, int]:
    """Decode the first character of ``data``.

    Returns ``(rune, consumed)``. ``consumed`` is 0 when the data ends in the
    middle of a sequence, so that the caller can wait for more bytes.
    """
    if not data:
        return UTF_INVALID, 0
    rune, size = _decode_byte(data[0])
    if not 1 <= size <= UTF_SIZE:
        return UTF_INVALID, 1
    consumed = 1
    for byte in data[1:size]:
        value, kind = _decode_byte(byte)
        rune = (rune << 6) | value
        if kind != 0:
            return UTF_INVALID, consumed
        consumed += 1
    if consumed < size:
        return UTF_INVALID, 0
    rune, _ = utf8_validate(rune, size)
    return rune, size


def utf8_encode(rune: int) -> bytes:
    """Encode a rune as UTF-8; invalid runes become U+FFFD."""
    rune, length = utf8_validate(rune, 0)
    tail = []
    for _ in range(length - 1):
        tail.append(_UTF_BYTE[0] | (rune & ~_UTF_MASK[0] & 0xFF))
        rune >>= 6
    lead = _UTF_BYTE[length] | (rune & ~_UTF_MASK[length] & 0xFF)
    return bytes([lead, *reversed(tail)])


def base64_decode(text: str | bytes) -> bytes:
    """Decode base64 leniently: non-printable bytes are skipped and padding is implied."""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    printable = bytes(byte for byte in data if 0x20 <= byte <= 0x7E)
    out = bytearray()
    for start in range(0, len(printable), 4):
        chunk = printable[start:start + 4].ljust(4, b"=")
        a, b, c, d = (_BASE64_DIGITS.get(char, 0) for char in chunk)
        if a == -1 or b == -1:
            break
        out.append(((a << 2) | ((b & 0x30) >> 4)) & 0xFF)
        if c == -1:
            break
        out.append((((b & 0x0F) << 4) | ((c & 0x3C) >> 2)) & 0xFF)
        if d == -1:
            break
        out.append((((c & 0x03) << 6) | d) & 0xFF)
    return bytes(out)


def is_control_c0(rune: int) -> bool:
    """True for C0 control characters and DEL."""
    return 0 <= rune <= 0x1F or rune == 0x7F


def is_control_c1(rune: int) -> bool:
    """True for C1 control characters."""
    return 0x80 <= rune <= 0x9F


def is_control(rune: int) -> bool:
    """True for any C0 or C1 control character."""
    return is_control_c0(rune) or is_control_c1(rune)