"""Tests for keyboard layout switching."""

from cardsearch.transliteration import looks_like_wrong_layout, transliterate_keyboard_layout


def test_latin_word_is_retyped_on_russian_layout():
    """Each key maps to the Cyrillic letter on the same key."""

    assert transliterate_keyboard_layout("telefon") == "еудуащт"
    assert transliterate_keyboard_layout("ntktajy") == "телефон"


def test_case_is_preserved():
    """Shifted keys produce upper-case Cyrillic letters."""

    assert transliterate_keyboard_layout("Ntktajy") == "Телефон"
    assert transliterate_keyboard_layout("GHBDTN") == "ПРИВЕТ"


def test_punctuation_keys_are_remapped():
    """Letter keys holding punctuation on the Latin layout map to letters."""

    assert transliterate_keyboard_layout(",fnfhtz") == "батарея"
    assert transliterate_keyboard_layout("[jkjlbkmybr") == "холодильник"
    assert transliterate_keyboard_layout("`krf") == "ёлка"


def test_mapping_is_applied_once():
    """Output characters are not mapped a second time."""

    assert transliterate_keyboard_layout("/") == "."
    assert transliterate_keyboard_layout("?") == ","
    assert transliterate_keyboard_layout("#1") == "№1"


def test_unmapped_text_passes_through():
    """Digits, spaces and Cyrillic are left untouched."""

    for text in ("", "123 456", "телефон 5", "-_=+"):
        assert transliterate_keyboard_layout(text) == text


def test_wrong_layout_detection():
    """Only Latin-only text looks like a layout mix-up."""

    assert looks_like_wrong_layout("ntktajy")
    assert looks_like_wrong_layout("ghbdtn")
    assert looks_like_wrong_layout("telefon")
    assert not looks_like_wrong_layout("телефон")
    assert not looks_like_wrong_layout("iphone телефон")
    assert not looks_like_wrong_layout("12345")
    assert not looks_like_wrong_layout("")


def test_english_words_are_not_layout_mixups():
    """Words that lose their vowels when switched are taken as typed."""

    assert not looks_like_wrong_layout("phone")
    assert not looks_like_wrong_layout("samsung")
    assert not looks_like_wrong_layout("iPhone case")
