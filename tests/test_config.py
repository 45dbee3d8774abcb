import pytest

from stterm.config import Config


def test_space_is_default_delimiter():
    config = Config()
    assert config.is_delimiter(ord(" "))
    assert not config.is_delimiter(ord("a"))


def test_custom_delimiters():
    config = Config(worddelimiters=",;")
    assert config.is_delimiter(ord(","))
    assert config.is_delimiter(ord(";"))
    assert not config.is_delimiter(ord(" "))


def test_nul_is_never_a_delimiter():
    config = Config(worddelimiters="\0 ")
    assert not config.is_delimiter(0)


@pytest.mark.parametrize("tabspaces", [0, -4])
def test_non_positive_tabspaces_rejected(tabspaces):
    with pytest.raises(ValueError):
        Config(tabspaces=tabspaces)


def test_colornames_not_shared_between_instances():
    first = Config()
    second = Config()
    first.colornames[0] = "#101010"
    assert second.colornames[0] != first.colornames[0]


def test_default_colors_have_names():
    config = Config()
    for index in (config.defaultfg, config.defaultbg, config.defaultcs, config.defaultrcs):
        assert config.colornames[index].startswith("#")