"""Keyboard layout switching for queries typed on the wrong layout.

A user who meant to type ``телефон`` with the Latin layout active produces
``ntktajy``. :func:`transliterate_keyboard_layout` maps every key of the
Latin (QWERTY) layout to the character the same key yields on the Russian
(ЙЦУКЕН) layout, so the search backend can be queried a second time with the
intended word.

The mapping is applied in a single pass over the input: an output character is
never mapped again (``/`` becomes ``.``, not ``ю``).
"""
from __future__ import annotations

import re

_LOWER_KEYS = "f,dult`;pbqrkvyjghcnea[wxioms]'.z"
_LOWER_CYRILLIC = "абвгдеёжзийклмнопрстуфхцчшщьыъэюя"
_UPPER_KEYS = 'F<DULT~:PBQRKVYJGHCNEA{WXIOMS}">Z'
_UPPER_CYRILLIC = "АБВГДЕЁЖЗИЙКЛМНОПРСТУФХЦЧШЩЬЫЪЭЮЯ"
# Shifted digit row and remaining punctuation differ between the layouts.
_PUNCTUATION = {
    "@": '"',
    "#": "№",
    "$": ";",
    "^": ":",
    "&": "?",
    "/": ".",
    "?": ",",
}

KEYBOARD_LAYOUT_TABLE = str.maketrans(
    {
        **dict(zip(_LOWER_KEYS, _LOWER_CYRILLIC)),
        **dict(zip(_UPPER_KEYS, _UPPER_CYRILLIC)),
        **_PUNCTUATION,
    }
)

LATIN_PATTERN = re.compile(r"[A-Za-z]")
CYRILLIC_PATTERN = re.compile(r"[А-Яа-яЁё]")
LATIN_VOWELS = frozenset("aeiouy")
CYRILLIC_VOWELS = frozenset("аеёиоуыэюя")


def transliterate_keyboard_layout(text: str) -> str:
    """Re-type ``text`` as if the Russian keyboard layout had been active."""
    if not text:
        return ""
    return text.translate(KEYBOARD_LAYOUT_TABLE)


def _count_vowels(text: str, vowels: frozenset) -> int:
    return sum(1 for ch in text.lower() if ch in vowels)


def looks_like_wrong_layout(text: str) -> bool:
    """Guess whether Latin-only ``text`` is Russian typed on the Latin layout.

    Russian vowels sit on Latin consonant keys, so a mistyped Russian word has
    few Latin vowels and gains vowels once switched, while an English word
    such as ``phone`` (``зрщту``) loses them.
    """
    if not text or not LATIN_PATTERN.search(text) or CYRILLIC_PATTERN.search(text):
        return False
    switched = transliterate_keyboard_layout(text)
    return _count_vowels(switched, CYRILLIC_VOWELS) > _count_vowels(text, LATIN_VOWELS)
