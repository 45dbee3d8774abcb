import pytest

from stterm.glyph import Attr, Glyph, is_truecolor, truecolor


def test_copy_is_independent():
    original = Glyph(u=ord("x"), mode=Attr.BOLD, fg=3, bg=4)
    duplicate = original.copy()
    duplicate.u = ord("y")
    duplicate.mode |= Attr.ITALIC
    assert original.u == ord("x")
    assert original.mode == Attr.BOLD
    assert duplicate == Glyph(u=ord("y"), mode=Attr.BOLD | Attr.ITALIC, fg=3, bg=4)


def test_copy_equals_original():
    glyph = Glyph(u=ord("q"), mode=Attr.UNDERLINE, fg=1, bg=2, ustyle=3, ucolor=(1, 2, 3))
    assert glyph.copy() == glyph


def test_attrs_differ_ignores_wrap_and_liga():
    base = Glyph(mode=Attr.BOLD, fg=1, bg=2)
    other = Glyph(u=ord("z"), mode=Attr.BOLD | Attr.WRAP | Attr.LIGA, fg=1, bg=2)
    assert not base.attrs_differ(other)


@pytest.mark.parametrize(
    "other",
    [
        Glyph(mode=Attr.BOLD | Attr.ITALIC, fg=1, bg=2),
        Glyph(mode=Attr.BOLD, fg=5, bg=2),
        Glyph(mode=Attr.BOLD, fg=1, bg=6),
    ],
)
def test_attrs_differ_detects_changes(other):
    base = Glyph(mode=Attr.BOLD, fg=1, bg=2)
    assert base.attrs_differ(other)
    assert other.attrs_differ(base)


def test_truecolor_black_is_only_the_flag():
    assert truecolor(0, 0, 0) == 1 << 24


@pytest.mark.parametrize("rgb", [(0, 0, 0), (255, 255, 255), (12, 34, 56)])
def test_truecolor_components_recoverable(rgb):
    color = truecolor(*rgb)
    assert is_truecolor(color)
    assert ((color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF) == rgb


@pytest.mark.parametrize("index", [0, 7, 255, 259])
def test_palette_index_is_not_truecolor(index):
    assert not is_truecolor(index)


def test_bold_faint_matches_bold_and_faint_together():
    combined = Glyph(mode=Attr.BOLD_FAINT, fg=1, bg=2)
    both = Glyph(mode=Attr.BOLD | Attr.FAINT, fg=1, bg=2)
    assert not combined.attrs_differ(both)
    assert combined.attrs_differ(Glyph(mode=Attr.BOLD, fg=1, bg=2))
    assert combined.attrs_differ(Glyph(mode=Attr.FAINT, fg=1, bg=2))