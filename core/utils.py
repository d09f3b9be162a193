"""Utility functions for wordsnap application."""

import re

from .config import MIN_WORD_LENGTH

# Anything but ASCII letters, digits and whitespace splits words
_NON_WORD_CHARS = re.compile(r'[^a-z0-9\s]')
_LETTERS_ONLY = re.compile(r'[a-z]+')


def normalize(text: str) -> str:
    """Lower-case and trim a word or transcript."""
    return (text or '').lower().strip()


def extract_words(raw_text: str) -> list[str]:
    """Turn recognized text into an ordered, deduplicated list of candidate words."""
    cleaned = _NON_WORD_CHARS.sub(' ', (raw_text or '').lower())
    words = []
    seen = set()
    for token in cleaned.split():
        if len(token) < MIN_WORD_LENGTH:
            continue
        if not _LETTERS_ONLY.fullmatch(token):
            continue
        if token in seen:
            continue
        seen.add(token)
        words.append(token)
    return words
