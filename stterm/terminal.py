"""The terminal state machine: control codes, escape sequences and printing."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from enum import IntFlag

from wcwidth import wcwidth

from .codec import (
    UTF_SIZE,
    base64_decode,
    is_control,
    is_control_c1,
    utf8_decode,
    utf8_encode,
)
from .config import Config
from .csi import apply_sgr, csi_dump, parse_csi, parse_str, str_dump
from .glyph import Attr, WinMode
from .screen import CursorState, Screen, TermMode
from .selection import Selection
from .window import Window

log = logging.getLogger(__name__)

ESC_BUF_SIZE = 128 * UTF_SIZE

_ATOI = re.compile(rb"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_STR_C1 = {0x90: "P", 0x9F: "_", 0x9E: "^", 0x9D: "]"}
_IGNORED_PRIVATE_MODES = {0, 2, 3, 4, 8, 18, 19, 42, 12, 1001, 1005, 1015}


class _Esc(IntFlag):
    START = 1
    CSI = 2
    STR = 4
    ALTCHARSET = 8
    STR_END = 16
    TEST = 32
    UTF8 = 64


def _atoi(data: bytes) -> int:
    match = _ATOI.match(data)
    return int(match.group(1)) if match else 0


class Terminal:
    """Feeds bytes from the program into the screen and answers its queries."""

    def __init__(
        self,
        cols: int,
        rows: int,
        config: Config | None = None,
        window: Window | None = None,
        writer: Callable[[bytes], object] | None = None,
        printer: Callable[[bytes], object] | None = None,
    ) -> None:
        self.config = config or Config()
        self.screen = Screen(cols, rows, self.config)
        self.selection = Selection(self.screen)
        self.window = window or Window(config=self.config)
        if self.window.on_redraw is None:
            self.window.on_redraw = self.screen.full_dirty
        self.writer = writer
        self.printer = printer
        self.esc = 0
        self.lastc = 0
        self._csi_buf = bytearray()
        self._str_buf = bytearray()
        self._str_type = ""

    # -- input ---------------------------------------------------------

    def write(self, data: bytes, show_ctrl: bool = False) -> int:
        """Process ``data``; return how many bytes were used.

        An incomplete UTF-8 sequence at the end is left unused.
        """
        data = bytes(data)
        n = 0
        while n < len(data):
            if self.screen.mode & TermMode.UTF8:
                rune, size = utf8_decode(data[n:n + UTF_SIZE])
                if size == 0:
                    break
            else:
                rune, size = data[n], 1
            if show_ctrl and is_control(rune):
                if rune & 0x80:
                    rune &= 0x7F
                    self.put_char(ord("^"))
                    self.put_char(ord("["))
                elif rune not in (0x0A, 0x0D, 0x09):
                    rune ^= 0x40
                    self.put_char(ord("^"))
            self.put_char(rune)
            n += size
        return n

    def put_char(self, rune: int) -> None:
        """Handle one character: as part of a sequence, as a control or as text."""
        screen = self.screen
        control = is_control(rune)
        width = 1
        if rune < 127 or not screen.mode & TermMode.UTF8:
            encoded = bytes([rune & 0xFF])
        else:
            encoded = utf8_encode(rune)
            if not control:
                width = wcwidth(chr(rune))
                if width == -1:
                    width = 1

        if screen.mode & TermMode.PRINT:
            self._print(encoded)

        if self.esc & _Esc.STR:
            if rune in (0x07, 0x18, 0x1A, 0x1B) or is_control_c1(rune):
                self.esc &= ~(_Esc.START | _Esc.STR)
                self.esc |= _Esc.STR_END
            else:
                self._str_buf += encoded
                return

        if control:
            if screen.mode & TermMode.UTF8 and is_control_c1(rune):
                return
            self._control_code(rune)
            if not self.esc:
                self.lastc = 0
            return

        if self.esc & _Esc.START:
            if self.esc & _Esc.CSI:
                self._csi_buf.append(rune & 0xFF)
                if 0x40 <= rune <= 0x7E or len(self._csi_buf) >= ESC_BUF_SIZE - 1:
                    self.esc = 0
                    self._csi_handle()
                return
            if self.esc & _Esc.UTF8:
                self._define_utf8(rune)
            elif self.esc & _Esc.ALTCHARSET:
                self._define_translation(rune)
            elif self.esc & _Esc.TEST:
                self._dec_test(rune)
            elif not self._esc_handle(rune):
                return
            self.esc = 0
            return

        self._print_char(rune, width)

    def _print_char(self, rune: int, width: int) -> None:
        screen = self.screen
        cursor = screen.cursor
        if self.selection.selected(cursor.x, cursor.y):
            self.selection.clear()

        if screen.mode & TermMode.WRAP and cursor.state & CursorState.WRAPNEXT:
            screen.lines[cursor.y][cursor.x].mode |= Attr.WRAP
            screen.new_line(True)

        cursor = screen.cursor
        cols = screen.cols
        if screen.mode & TermMode.INSERT and cursor.x + width < cols:
            line = screen.lines[cursor.y]
            line[cursor.x + width:cols] = [g.copy() for g in line[cursor.x:cols - width]]
            line[cursor.x].mode &= ~Attr.WIDE

        if cursor.x + width > cols:
            if screen.mode & TermMode.WRAP:
                screen.new_line(True)
            else:
                screen.move_to(cols - width, cursor.y)

        cursor = screen.cursor
        x, y = cursor.x, cursor.y
        screen.set_char(rune, cursor.attr, x, y)
        self.lastc = rune

        line = screen.lines[y]
        if width == 2:
            line[x].mode |= Attr.WIDE
            if x + 1 < cols:
                if line[x + 1].mode == Attr.WIDE and x + 2 < cols:
                    line[x + 2].u = 0x20
                    line[x + 2].mode &= ~Attr.WDUMMY
                line[x + 1].u = 0
                line[x + 1].mode = int(Attr.WDUMMY)
        if x + width < cols:
            screen.move_to(x + width, y)
        else:
            cursor.state |= CursorState.WRAPNEXT

    # -- output --------------------------------------------------------

    def tty_write(self, data: bytes, may_echo: bool = False) -> None:
        """Send ``data`` to the program, echoing it and mapping CR to CRLF as the modes say."""
        data = bytes(data)
        self.screen.kscroll_down(self.screen.scroll)
        if may_echo and self.screen.mode & TermMode.ECHO:
            self.write(data, True)
        if self.screen.mode & TermMode.CRLF:
            data = data.replace(b"\r", b"\r\n")
        if self.writer is not None:
            self.writer(data)

    def _print(self, data: bytes) -> None:
        if self.printer is not None:
            self.printer(data)

    # -- whole-terminal operations ------------------------------------

    def resize(self, cols: int, rows: int) -> None:
        self.screen.resize(cols, rows)

    def reset(self) -> None:
        self.screen.reset()

    def toggle_printer(self) -> None:
        self.screen.mode ^= TermMode.PRINT

    def print_screen(self) -> None:
        self._print(self.screen.dump())

    def print_selection(self) -> None:
        text = self.selection.text()
        if text:
            self._print(text.encode("utf-8"))

    # -- control codes and escapes ------------------------------------

    def _control_code(self, code: int) -> None:
        screen = self.screen
        cursor = screen.cursor
        if code == 0x09:
            screen.put_tab(1)
            return
        if code == 0x08:
            screen.move_to(cursor.x - 1, cursor.y)
            return
        if code == 0x0D:
            screen.move_to(0, cursor.y)
            return
        if code in (0x0A, 0x0B, 0x0C):
            screen.new_line(bool(screen.mode & TermMode.CRLF))
            return
        if code == 0x1B:
            self._csi_buf = bytearray()
            self.esc &= ~(_Esc.CSI | _Esc.ALTCHARSET | _Esc.TEST)
            self.esc |= _Esc.START
            return
        if code in (0x0E, 0x0F):
            screen.charset = 1 - (code - 0x0E)
            return
        if code in (0x05, 0x00, 0x11, 0x13, 0x7F):
            return
        if code in _STR_C1:
            self._str_sequence(code)
            return
        if code == 0x07:
            if self.esc & _Esc.STR_END:
                self._str_handle()
            else:
                self.window.bell()
        elif code == 0x1A:
            screen.set_char(ord("?"), cursor.attr, cursor.x, cursor.y)
            self._csi_buf = bytearray()
        elif code == 0x18:
            self._csi_buf = bytearray()
        elif code == 0x85:
            screen.new_line(True)
        elif code == 0x88:
            screen.tabs[cursor.x] = True
        elif code == 0x9A:
            self.tty_write(self.config.vtiden.encode())
        self.esc &= ~(_Esc.STR_END | _Esc.STR)

    def _str_sequence(self, code: int) -> None:
        self._str_type = _STR_C1.get(code, chr(code))
        self._str_buf = bytearray()
        self.esc |= _Esc.STR

    def _esc_handle(self, code: int) -> bool:
        """Handle the byte after ESC; False while the sequence continues."""
        screen = self.screen
        cursor = screen.cursor
        char = chr(code)
        if char == "[":
            self.esc |= _Esc.CSI
            return False
        if char == "#":
            self.esc |= _Esc.TEST
            return False
        if char == "%":
            self.esc |= _Esc.UTF8
            return False
        if char in "P_^]k":
            self._str_sequence(code)
            return False
        if char in "()*+":
            screen.icharset = code - ord("(")
            self.esc |= _Esc.ALTCHARSET
            return False
        if char in "no":
            screen.charset = 2 + (code - ord("n"))
        elif char == "D":
            if cursor.y == screen.bot:
                screen.scroll_up(screen.top, 1, True)
            else:
                screen.move_to(cursor.x, cursor.y + 1)
        elif char == "E":
            screen.new_line(True)
        elif char == "H":
            screen.tabs[cursor.x] = True
        elif char == "M":
            if cursor.y == screen.top:
                screen.scroll_down(screen.top, 1, True)
            else:
                screen.move_to(cursor.x, cursor.y - 1)
        elif char == "Z":
            self.tty_write(self.config.vtiden.encode())
        elif char == "c":
            self.reset()
            self.window.set_title(None)
            self.window.load_colors()
            self.window.set_mode(False, WinMode.HIDE)
        elif char == "=":
            self.window.set_mode(True, WinMode.APPKEYPAD)
        elif char == ">":
            self.window.set_mode(False, WinMode.APPKEYPAD)
        elif char == "7":
            screen.save_cursor()
        elif char == "8":
            screen.restore_cursor()
        elif char == "\\":
            if self.esc & _Esc.STR_END:
                self._str_handle()
        else:
            shown = char if 0x20 <= code <= 0x7E else "."
            log.warning("erresc: unknown sequence ESC 0x%02X '%s'", code & 0xFF, shown)
        return True

    def _define_utf8(self, code: int) -> None:
        if code == ord("G"):
            self.screen.mode |= TermMode.UTF8
        elif code == ord("@"):
            self.screen.mode &= ~TermMode.UTF8

    def _define_translation(self, code: int) -> None:
        char = chr(code)
        if char in ("0", "B"):
            self.screen.charsets[self.screen.icharset] = char
        else:
            log.warning("esc unhandled charset: ESC ( %s", char)

    def _dec_test(self, code: int) -> None:
        if code == ord("8"):
            screen = self.screen
            for y in range(screen.rows):
                for x in range(screen.cols):
                    screen.set_char(ord("E"), screen.cursor.attr, x, y)

    # -- CSI -----------------------------------------------------------

    def _csi_handle(self) -> None:
        seq = parse_csi(bytes(self._csi_buf))
        if not self._csi_dispatch(seq):
            log.warning("erresc: unknown csi %s", csi_dump(seq.buf))

    def _csi_dispatch(self, seq) -> bool:
        screen = self.screen
        cursor = screen.cursor
        args = seq.args + [0] * max(0, 2 - len(seq.args))
        first = args[0] or 1
        final = chr(seq.mode[0])

        if final == "@":
            screen.insert_blanks(first)
        elif final == "A":
            screen.move_to(cursor.x, cursor.y - first)
        elif final in "Be":
            screen.move_to(cursor.x, cursor.y + first)
        elif final == "i":
            if args[0] == 0:
                self.print_screen()
            elif args[0] == 1:
                self._print(screen.dump_line(cursor.y))
            elif args[0] == 2:
                self.print_selection()
            elif args[0] == 4:
                screen.mode &= ~TermMode.PRINT
            elif args[0] == 5:
                screen.mode |= TermMode.PRINT
        elif final == "c":
            if args[0] == 0:
                self.tty_write(self.config.vtiden.encode())
        elif final == "b":
            count = min(max(args[0], 1), 65535)
            if self.lastc:
                for _ in range(count):
                    self.put_char(self.lastc)
        elif final in "Ca":
            screen.move_to(cursor.x + first, cursor.y)
        elif final == "D":
            screen.move_to(cursor.x - first, cursor.y)
        elif final == "E":
            screen.move_to(0, cursor.y + first)
        elif final == "F":
            screen.move_to(0, cursor.y - first)
        elif final == "g":
            if args[0] == 0:
                screen.tabs[cursor.x] = False
            elif args[0] == 3:
                screen.tabs = [False] * screen.cols
            else:
                return False
        elif final in "G`":
            screen.move_to(first - 1, cursor.y)
        elif final in "Hf":
            screen.move_to_absolute((args[1] or 1) - 1, first - 1)
        elif final == "I":
            screen.put_tab(first)
        elif final == "J":
            if args[0] == 0:
                screen.clear_region(cursor.x, cursor.y, screen.cols - 1, cursor.y)
                if cursor.y < screen.rows - 1:
                    screen.clear_region(0, cursor.y + 1, screen.cols - 1, screen.rows - 1)
            elif args[0] == 1:
                if cursor.y > 1:
                    screen.clear_region(0, 0, screen.cols - 1, cursor.y - 1)
                screen.clear_region(0, cursor.y, cursor.x, cursor.y)
            elif args[0] == 2:
                screen.clear_region(0, 0, screen.cols - 1, screen.rows - 1)
            else:
                return False
        elif final == "K":
            if args[0] == 0:
                screen.clear_region(cursor.x, cursor.y, screen.cols - 1, cursor.y)
            elif args[0] == 1:
                screen.clear_region(0, cursor.y, cursor.x, cursor.y)
            elif args[0] == 2:
                screen.clear_region(0, cursor.y, screen.cols - 1, cursor.y)
        elif final == "S":
            if not seq.priv:
                screen.scroll_up(screen.top, first, False)
        elif final == "T":
            screen.scroll_down(screen.top, first, False)
        elif final == "L":
            screen.insert_blank_lines(first)
        elif final == "l":
            self._set_mode(seq.priv, False, seq.args)
        elif final == "M":
            screen.delete_lines(first)
        elif final == "X":
            screen.clear_region(cursor.x, cursor.y, cursor.x + first - 1, cursor.y)
        elif final == "P":
            screen.delete_chars(first)
        elif final == "Z":
            screen.put_tab(-first)
        elif final == "d":
            screen.move_to_absolute(cursor.x, first - 1)
        elif final == "h":
            self._set_mode(seq.priv, True, seq.args)
        elif final == "m":
            cursor.attr = apply_sgr(cursor.attr, seq.args, seq.colon_args, self.config)
        elif final == "n":
            if args[0] == 5:
                self.tty_write(b"\033[0n")
            elif args[0] == 6:
                self.tty_write(f"\033[{cursor.y + 1};{cursor.x + 1}R".encode())
            else:
                return False
        elif final == "r":
            if seq.priv:
                return False
            screen.set_scroll_region(first - 1, (args[1] or screen.rows) - 1)
            screen.move_to_absolute(0, 0)
        elif final == "s":
            screen.save_cursor()
        elif final == "u":
            screen.restore_cursor()
        elif final == " ":
            if seq.mode[1] != ord("q"):
                return False
            try:
                self.window.set_cursor(args[0])
            except ValueError:
                return False
        else:
            return False
        return True

    def _set_mode(self, priv: bool, set: bool, args: list[int]) -> None:
        screen = self.screen
        window = self.window
        for arg in args:
            if not priv:
                if arg == 0:
                    pass
                elif arg == 2:
                    window.set_mode(set, WinMode.KBDLOCK)
                elif arg == 4:
                    self._mod_term(set, TermMode.INSERT)
                elif arg == 12:
                    self._mod_term(not set, TermMode.ECHO)
                elif arg == 20:
                    self._mod_term(set, TermMode.CRLF)
                else:
                    log.warning("erresc: unknown set/reset mode %d", arg)
                continue

            if arg == 1:
                window.set_mode(set, WinMode.APPCURSOR)
            elif arg == 5:
                window.set_mode(set, WinMode.REVERSE)
            elif arg == 6:
                if set:
                    screen.cursor.state |= CursorState.ORIGIN
                else:
                    screen.cursor.state &= ~CursorState.ORIGIN
                screen.move_to_absolute(0, 0)
            elif arg == 7:
                self._mod_term(set, TermMode.WRAP)
            elif arg in _IGNORED_PRIVATE_MODES:
                pass
            elif arg == 25:
                window.set_mode(not set, WinMode.HIDE)
            elif arg in (9, 1000, 1002, 1003):
                window.set_pointer_motion(set and arg == 1003)
                window.set_mode(False, WinMode.MOUSE)
                flag = {
                    9: WinMode.MOUSEX10,
                    1000: WinMode.MOUSEBTN,
                    1002: WinMode.MOUSEMOTION,
                    1003: WinMode.MOUSEMANY,
                }[arg]
                window.set_mode(set, flag)
            elif arg == 1004:
                window.set_mode(set, WinMode.FOCUS)
            elif arg == 1006:
                window.set_mode(set, WinMode.MOUSESGR)
            elif arg == 1034:
                window.set_mode(set, WinMode.EIGHTBIT)
            elif arg in (1049, 47, 1047):
                if not self.config.allowaltscreen:
                    continue
                if arg == 1049:
                    self._save_or_load(set)
                alt = bool(screen.mode & TermMode.ALTSCREEN)
                if alt:
                    screen.clear_region(0, 0, screen.cols - 1, screen.rows - 1)
                if set != alt:
                    screen.swap_screen()
                if arg == 1049:
                    self._save_or_load(set)
            elif arg == 1048:
                self._save_or_load(set)
            elif arg == 2004:
                window.set_mode(set, WinMode.BRCKTPASTE)
            else:
                log.warning("erresc: unknown private set/reset mode %d", arg)

    def _save_or_load(self, save: bool) -> None:
        if save:
            self.screen.save_cursor()
        else:
            self.screen.restore_cursor()

    def _mod_term(self, set: bool, flag: int) -> None:
        if set:
            self.screen.mode |= flag
        else:
            self.screen.mode &= ~flag

    # -- string sequences ----------------------------------------------

    def _str_handle(self) -> None:
        self.esc &= ~(_Esc.STR_END | _Esc.STR)
        raw = parse_str(bytes(self._str_buf))
        args = [arg.decode("utf-8", errors="replace") for arg in raw]
        narg = len(args)
        par = _atoi(raw[0]) if narg else 0
        window = self.window
        kind = self._str_type

        if kind == "]":
            if par == 0:
                if narg > 1:
                    window.set_title(args[1])
                    window.set_icon_title(args[1])
                return
            if par == 1:
                if narg > 1:
                    window.set_icon_title(args[1])
                return
            if par == 2:
                if narg > 1:
                    window.set_title(args[1])
                return
            if par == 52:
                if narg > 2 and self.config.allowwindowops:
                    decoded = base64_decode(raw[2])
                    window.set_selection(decoded.decode("utf-8", errors="replace"))
                    window.clip_copy()
                return
            if par in (10, 11, 12) and narg >= 2:
                name = args[1]
                index, label = (
                    (self.config.defaultfg, "foreground"),
                    (self.config.defaultbg, "background"),
                    (self.config.defaultcs, "cursor"),
                )[par - 10]
                if name == "?":
                    self._osc_color_response(par, index, False)
                    return
                try:
                    window.set_color_name(index, name)
                except (ValueError, IndexError):
                    log.warning("erresc: invalid %s color: %s", label, name)
                else:
                    self.screen.full_dirty()
                return
            if (par == 4 and narg >= 3) or par == 104:
                name = args[2] if par == 4 else None
                index = _atoi(raw[1]) if narg > 1 else -1
                if name == "?":
                    self._osc_color_response(index, 0, True)
                    return
                try:
                    window.set_color_name(index, name)
                except (ValueError, IndexError):
                    if par == 104 and narg <= 1:
                        window.load_colors()
                        return
                    log.warning("erresc: invalid color j=%d, p=%s", index, name or "(null)")
                else:
                    self.screen.full_dirty()
                return
        elif kind == "k":
            window.set_title(args[0] if args else None)
            return
        elif kind in ("P", "_", "^"):
            return

        log.warning("erresc: unknown str %s", str_dump(kind, bytes(self._str_buf)))

    def _osc_color_response(self, num: int, index: int, is_osc4: bool) -> None:
        target = num if is_osc4 else index
        name = "osc4" if is_osc4 else "osc"
        try:
            r, g, b = self.window.get_color(target)
        except IndexError:
            log.warning("erresc: failed to fetch %s color %d", name, target)
            return
        prefix = "4;" if is_osc4 else ""
        reply = f"\033]{prefix}{num};rgb:{r:02x}{r:02x}/{g:02x}{g:02x}/{b:02x}{b:02x}\007"
        if len(reply) >= 32:
            log.error("error: truncation occurred while printing %s response", name)
            return
        self.tty_write(reply.encode(), True)