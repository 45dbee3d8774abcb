# stterm

`stterm` is the core of a small VT100/xterm-compatible terminal emulator.
It keeps a grid of glyphs with scrollback history, interprets the bytes a
program writes to its terminal (control codes, CSI sequences, OSC and other
string sequences, SGR attributes with 16, 256 and true colours), tracks
selections and manages the pseudo-terminal or serial line the program runs on.

POSIX systems only.

## Modules

| Module              | What it holds                                                          |
|---------------------|------------------------------------------------------------------------|
| `stterm.codec`      | `utf8_decode`, `utf8_encode`, `utf8_validate`, `base64_decode`, control-character tests |
| `stterm.glyph`      | `Glyph` cells, `Attr` and `WinMode` flags, selection enums, `truecolor` |
| `stterm.config`     | `Config`: shell, tab width, default colours, word delimiters and more  |
| `stterm.window`     | `Window`: a headless record of window state (modes, titles, palette, clipboard) |
| `stterm.screen`     | `Screen`: the cell grid, alternate screen, cursor, scroll region, history |
| `stterm.csi`        | `parse_csi`, `parse_str`, `apply_sgr`, `define_color`, diagnostic dumps |
| `stterm.selection`  | `Selection`: regular and rectangular, word- and line-snapped selection |
| `stterm.tty`        | `Tty`, `shell_command`, `stty_command`, `ChildExitError`               |
| `stterm.terminal`   | `Terminal`: ties the pieces together                                    |

## Feeding bytes to a terminal

```python
from stterm.config import Config
from stterm.terminal import Terminal

replies = []
term = Terminal(80, 24, Config(), None, replies.append, None)

term.write(b"\x1b[1;31mhello\x1b[0m, world\r\n", False)
term.write(b"\x1b[6n", False)
print(replies)            # [b'\x1b[2;1R']
```

`Terminal.write` returns how many bytes it used; an incomplete UTF-8
sequence at the end is left for the next call. Answers to queries (device
attributes, status and cursor reports, OSC colour queries) go to the
`writer` callable; output of the print functions (`print_screen`,
`print_selection`, `CSI i`, and everything shown while printing is toggled
on with `toggle_printer`) goes to the `printer` callable.

The cells are in `term.screen`: `term.screen.line(y)` returns a list of
`Glyph` objects, each with its rune `u`, attribute flags `mode` and colours
`fg`/`bg`. `Screen.dump()` returns the visible text as UTF-8.

Window-side effects land on `term.window`: `title`, `icon_title`, `mode`
(`WinMode` flags such as `APPCURSOR`, `REVERSE`, mouse modes), `cursor`
style, `urgent` after a bell, `primary`/`clipboard` from OSC 52 when
`Config.allowwindowops` is set, and the colour palette, which accepts names
of the form `#rgb` … `#rrrrggggbbbb` and `rgb:r/g/b`.

## UTF-8 and base64

```python
from stterm.codec import utf8_decode, utf8_encode, base64_decode

rune, size = utf8_decode("é".encode())
assert utf8_encode(rune) == "é".encode()
assert base64_decode("aGVsbG8=") == b"hello"
```

Invalid sequences and out-of-range runes become U+FFFD.

## Selections

```python
from stterm.glyph import SelectionSnap, SelectionType

sel = term.selection
sel.start(0, 0, SelectionSnap.WORD)
sel.extend(10, 2, SelectionType.REGULAR, True)
print(sel.text())
```

Copied text ends lines with `\n`; wrapped lines are joined.

## Running a program

`Tty.open(line, cmd, out, args)` either spawns the user's shell (or `args`)
on a new pseudo-terminal, or opens the serial device `line` and configures it
by running `stty`. `out` names a file (or `-` for standard output) that
`Tty.write_output` copies to. `Tty.read(consume)` passes what the child
wrote to a callable such as `Terminal.write` and keeps any bytes it did not
use; it raises `ChildExitError` once the other end has gone away, with the
child's exit code (negative for a signal). `Tty.write` sends input in chunks
of at most 256 bytes, reading from the tty into `Tty.consumer` when it fills
up. `Tty.resize`, `Tty.hangup`, `Tty.send_break` and `Tty.close` do what
their names say; `Tty` is also a context manager.

## What it does not do

There is no graphical window, no font rendering, no keyboard or mouse input
handling and no command to start: `Window` only records state, and drawing
the screen, translating key presses into bytes for `Terminal.tty_write` and
running the read loop are left to the program that uses this package.