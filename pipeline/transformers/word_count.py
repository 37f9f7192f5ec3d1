"""
Strip markdown from post bodies and count semantic words
"""

from typing import Optional
import re

# Applied in order; later patterns assume earlier ones already ran
_MARKDOWN_RULES = [
    (re.compile(r"```[\s\S]*?```"), ""),                 # fenced code blocks
    (re.compile(r"`[^`]*`"), ""),                        # inline code
    (re.compile(r"!\[[^\]]*\]\([^)]*\)"), ""),           # images
    (re.compile(r"\[([^\]]+)\]\([^)]*\)"), r"\1"),       # links keep their text
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),       # headings
    (re.compile(r"^\s{0,3}[-*+]\s+", re.MULTILINE), ""), # list items
    (re.compile(r"^>\s+", re.MULTILINE), ""),            # blockquotes
    (re.compile(r"[*_~`]+"), ""),                        # emphasis
    (re.compile(r"</?[^>]+>"), ""),                      # raw html tags
]

_CJK_CHAR = re.compile(r"[\u4e00-\u9fa5]")
_LATIN_TOKEN = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z0-9]+)?")


def strip_markdown(text: Optional[str]) -> str:
    """Remove markdown syntax, keeping the readable text."""
    if not text:
        return ""
    for pattern, replacement in _MARKDOWN_RULES:
        text = pattern.sub(replacement, text)
    return text


def count_words(text: Optional[str]) -> int:
    """
    Count semantic words in a markdown body.

    Every CJK ideograph counts as one word; every run of Latin letters or
    digits (optionally with one inner apostrophe, as in "don't") counts as one.

    >>> count_words("Hello, 世界!")
    3
    """
    stripped = strip_markdown(text)
    if not stripped:
        return 0
    return len(_CJK_CHAR.findall(stripped)) + len(_LATIN_TOKEN.findall(stripped))
