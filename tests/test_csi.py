from stterm.config import Config
from stterm.csi import (
    apply_sgr,
    csi_dump,
    define_color,
    parse_csi,
    parse_str,
    str_dump,
)
from stterm.glyph import Attr, Glyph, truecolor


def test_parse_private_mode():
    seq = parse_csi(b"?25h")
    assert seq.priv is True
    assert seq.args == [25]
    assert seq.mode == b"h\0"


def test_parse_two_args():
    seq = parse_csi(b"3;7H")
    assert seq.priv is False
    assert seq.args == [3, 7]
    assert seq.mode[0] == ord("H")


def test_parse_no_args_gives_zero():
    seq = parse_csi(b"m")
    assert seq.args == [0]
    assert seq.colon_args == [[-1, -1, -1, -1]]


def test_parse_colon_args():
    seq = parse_csi(b"4:3m")
    assert seq.args == [4]
    assert seq.colon_args[0] == [3, -1, -1, -1]
    assert seq.mode[0] == ord("m")


def test_parse_intermediate_mode():
    seq = parse_csi(b"2 q")
    assert seq.args == [2]
    assert seq.mode == b" q"


def test_parse_overflow_becomes_minus_one():
    seq = parse_csi(b"99999999999999999999999m")
    assert seq.args == [-1]


def test_parse_caps_argument_count():
    seq = parse_csi(b";".join(b"1" for _ in range(20)) + b"m")
    assert len(seq.args) == 16


def test_parse_str_splits_arguments():
    assert parse_str(b"0;title") == [b"0", b"title"]
    assert parse_str(b"") == []
    assert parse_str(b"a;") == [b"a", b""]
    assert len(parse_str(b";" * 30)) == 16


def test_parse_str_stops_at_nul():
    assert parse_str(b"2;x\0;y") == [b"2", b"x"]


def test_define_color_rgb():
    assert define_color([38, 2, 10, 20, 30], 0) == (truecolor(10, 20, 30), 4)


def test_define_color_indexed():
    assert define_color([38, 5, 200], 0) == (200, 2)
    assert define_color([38, 5, 300], 0) == (None, 2)


def test_define_color_too_few_args():
    assert define_color([38, 2, 1], 0) == (None, 0)
    assert define_color([38, 9], 0) == (None, 0)


def test_sgr_bold_and_reset():
    config = Config()
    start = Glyph(fg=config.defaultfg, bg=config.defaultbg)
    bold = apply_sgr(start, [1, 3], [[-1] * 4] * 2, config)
    assert bold.mode & Attr.BOLD and bold.mode & Attr.ITALIC
    assert start.mode == 0
    cleared = apply_sgr(bold, [0], [[-1] * 4], config)
    assert not cleared.mode & (Attr.BOLD | Attr.ITALIC)
    assert cleared.ucolor == (-1, -1, -1)
    assert cleared.fg == config.defaultfg


def test_sgr_palette_colors():
    config = Config()
    attr = apply_sgr(Glyph(), [31, 42], [[-1] * 4] * 2, config)
    assert attr.fg == 1
    assert attr.bg == 2
    reset = apply_sgr(attr, [39, 49], [[-1] * 4] * 2, config)
    assert (reset.fg, reset.bg) == (config.defaultfg, config.defaultbg)


def test_sgr_truecolor_consumes_arguments():
    config = Config()
    args = [38, 2, 1, 2, 3, 1]
    attr = apply_sgr(Glyph(), args, [[-1] * 4] * len(args), config)
    assert attr.fg == truecolor(1, 2, 3)
    assert attr.mode & Attr.BOLD


def test_sgr_underline_style():
    config = Config()
    seq = parse_csi(b"4:0m")
    attr = apply_sgr(Glyph(mode=Attr.UNDERLINE), seq.args, seq.colon_args, config)
    assert not attr.mode & Attr.UNDERLINE
    assert attr.ustyle == 0
    seq = parse_csi(b"4m")
    attr = apply_sgr(Glyph(), seq.args, seq.colon_args, config)
    assert attr.mode & Attr.UNDERLINE


def test_sgr_unknown_is_ignored():
    config = Config()
    start = Glyph(fg=config.defaultfg)
    assert apply_sgr(start, [77], [[-1] * 4], config) == start


def test_csi_dump():
    assert csi_dump(b"1;2\nH") == "ESC[1;2(\\n)H"
    assert csi_dump(b"\x1b\r\x01") == "ESC[(\\e)(\\r)(01)"


def test_str_dump():
    assert str_dump("]", b"0;t\x1b") == "ESC]0;t(\\e)ESC\\"
    assert str_dump("P", b"ab\0cd") == "ESCPab"