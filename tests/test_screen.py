import pytest

from stterm.config import Config
from stterm.glyph import Attr, Glyph
from stterm.screen import HISTORY_SIZE, CursorState, Screen, TermMode


def make(cols=10, rows=5):
    return Screen(cols, rows, Config())


def put(screen, text, y=0, x=0):
    for offset, char in enumerate(text):
        screen.set_char(ord(char), screen.cursor.attr, x + offset, y)


def row_text(screen, y):
    return "".join(chr(cell.u) for cell in screen.line(y)).rstrip()


class Recorder:
    def __init__(self, hit=False):
        self.hit = hit
        self.calls = []

    def selected(self, x, y):
        return self.hit

    def clear(self):
        self.calls.append("clear")

    def scroll(self, orig, n):
        self.calls.append(("scroll", orig, n))


def test_new_screen_is_blank():
    screen = make()
    assert all(screen.line_length(y) == 0 for y in range(screen.rows))
    assert screen.dump() == b"\n" * screen.rows
    assert (screen.cursor.x, screen.cursor.y) == (0, 0)
    assert screen.mode == TermMode.WRAP | TermMode.UTF8


def test_default_tabs_every_tabspaces():
    screen = make(cols=20)
    step = screen.config.tabspaces
    assert [i for i, tab in enumerate(screen.tabs) if tab] == list(range(step, 20, step))


def test_set_char_and_dump_line():
    screen = make()
    put(screen, "hi")
    assert screen.dump_line(0) == b"hi\n"
    assert screen.line_length(0) == 2


def test_wrap_flag_gives_full_length():
    screen = make()
    screen.lines[0][screen.cols - 1].mode |= Attr.WRAP
    assert screen.line_length(0) == screen.cols


def test_move_to_clamps():
    screen = make()
    screen.move_to(100, 100)
    assert (screen.cursor.x, screen.cursor.y) == (screen.cols - 1, screen.rows - 1)
    screen.move_to(-4, -4)
    assert (screen.cursor.x, screen.cursor.y) == (0, 0)


def test_origin_mode_moves_relative_to_region():
    screen = make()
    screen.set_scroll_region(1, 3)
    screen.cursor.state |= CursorState.ORIGIN
    screen.move_to_absolute(0, 0)
    assert screen.cursor.y == screen.top
    screen.move_to(0, 100)
    assert screen.cursor.y == screen.bot


def test_scroll_region_is_ordered():
    screen = make()
    screen.set_scroll_region(3, 1)
    assert (screen.top, screen.bot) == (1, 3)


def test_scroll_up_keeps_history_and_kscroll():
    screen = make()
    put(screen, "A")
    screen.scroll_up(0, 1, True)
    assert row_text(screen, 0) == ""
    screen.kscroll_up(1)
    assert screen.scroll == 1
    assert row_text(screen, 0) == "A"
    screen.kscroll_down(1)
    assert screen.scroll == 0
    assert row_text(screen, 0) == ""


def test_kscroll_up_stops_at_history_size():
    screen = make()
    screen.scroll = HISTORY_SIZE
    screen.kscroll_up(1)
    assert screen.scroll == HISTORY_SIZE


def test_new_line_at_bottom_scrolls():
    screen = make()
    put(screen, "ab", y=1)
    screen.move_to(3, screen.rows - 1)
    screen.new_line(True)
    assert row_text(screen, 0) == "ab"
    assert (screen.cursor.x, screen.cursor.y) == (0, screen.rows - 1)


def test_new_line_keeps_column():
    screen = make()
    screen.move_to(3, 0)
    screen.new_line(False)
    assert (screen.cursor.x, screen.cursor.y) == (3, 1)


def test_delete_and_insert_chars():
    screen = make()
    put(screen, "ABC")
    screen.move_to(0, 0)
    screen.delete_chars(1)
    assert row_text(screen, 0) == "BC"
    screen.insert_blanks(1)
    assert screen.dump_line(0) == b" BC\n"


def test_insert_and_delete_lines():
    screen = make()
    put(screen, "a", y=0)
    put(screen, "b", y=1)
    screen.move_to(0, 0)
    screen.insert_blank_lines(1)
    assert [row_text(screen, y) for y in range(3)] == ["", "a", "b"]
    screen.delete_lines(1)
    assert [row_text(screen, y) for y in range(3)] == ["a", "b", ""]


def test_lines_stay_distinct_after_scrolling():
    screen = make()
    screen.scroll_up(0, 2, False)
    screen.scroll_down(0, 3, False)
    cells = [id(cell) for y in range(screen.rows) for cell in screen.lines[y]]
    assert len(set(cells)) == len(cells)


def test_put_tab_forward_and_back():
    screen = make(cols=20)
    screen.put_tab(1)
    assert screen.cursor.x == screen.config.tabspaces
    screen.put_tab(-1)
    assert screen.cursor.x == 0
    screen.put_tab(10)
    assert screen.cursor.x == screen.cols - 1


def test_clear_region_accepts_swapped_corners():
    screen = make()
    put(screen, "xyz", y=2)
    screen.clear_region(2, 2, 0, 2)
    assert row_text(screen, 2) == ""


def test_dec_graphics_charset():
    screen = make()
    screen.charsets[0] = "0"
    put(screen, "q")
    assert screen.lines[0][0].u == ord("─")


def test_overwriting_wide_cell_clears_dummy():
    screen = make()
    screen.set_char(ord("W"), Glyph(mode=Attr.WIDE), 0, 0)
    screen.set_char(0, Glyph(mode=Attr.WDUMMY), 1, 0)
    put(screen, "n")
    assert screen.lines[0][1].u == ord(" ")
    assert not screen.lines[0][1].mode & Attr.WDUMMY


def test_swap_screen_preserves_main():
    screen = make()
    put(screen, "m")
    screen.swap_screen()
    assert screen.mode & TermMode.ALTSCREEN
    assert row_text(screen, 0) == ""
    screen.swap_screen()
    assert row_text(screen, 0) == "m"


def test_save_and_restore_cursor():
    screen = make()
    screen.move_to(4, 3)
    screen.save_cursor()
    screen.move_to(0, 0)
    screen.restore_cursor()
    assert (screen.cursor.x, screen.cursor.y) == (4, 3)


def test_attr_set_and_dirty_attr():
    screen = make()
    assert not screen.attr_set(Attr.BLINK)
    screen.set_char(ord("b"), Glyph(mode=Attr.BLINK), 0, 1)
    assert screen.attr_set(Attr.BLINK)
    screen.dirty = [False] * screen.rows
    screen.set_dirty_attr(Attr.BLINK)
    assert [y for y, flag in enumerate(screen.dirty) if flag] == [1]


def test_set_dirty_clamps():
    screen = make()
    screen.dirty = [False] * screen.rows
    screen.set_dirty(-5, 1)
    assert screen.dirty == [True, True] + [False] * (screen.rows - 2)


def test_resize_grows_and_keeps_content():
    screen = make()
    put(screen, "keep")
    screen.resize(20, 8)
    assert (screen.cols, screen.rows) == (20, 8)
    assert row_text(screen, 0) == "keep"
    assert all(len(line) == 20 for line in screen.lines)
    assert screen.bot == 7


def test_resize_slides_to_keep_cursor():
    screen = make()
    put(screen, "z", y=4)
    screen.move_to(0, 4)
    screen.resize(10, 2)
    assert row_text(screen, 1) == "z"
    assert screen.cursor.y == 1


def test_resize_rejects_empty():
    screen = make()
    with pytest.raises(ValueError):
        screen.resize(0, 3)


def test_reset_clears_everything():
    screen = make()
    put(screen, "abc")
    screen.move_to(5, 2)
    screen.mode |= TermMode.INSERT
    screen.reset()
    assert screen.dump() == b"\n" * screen.rows
    assert (screen.cursor.x, screen.cursor.y) == (0, 0)
    assert not screen.mode & TermMode.INSERT


def test_selection_hooks_are_called():
    screen = make()
    recorder = Recorder()
    screen.selection = recorder
    screen.scroll_up(0, 1, False)
    assert recorder.calls == [("scroll", 0, -1)]
    hit = Recorder(hit=True)
    screen.selection = hit
    screen.clear_region(0, 0, 0, 0)
    assert hit.calls == ["clear"]