"""
Tests for markdown stripping and word counting
"""

import pytest
from pipeline.transformers.word_count import count_words, strip_markdown


def test_empty_and_none_are_zero():
    assert count_words("") == 0
    assert count_words(None) == 0


def test_cjk_characters_count_individually():
    # "Hello" is one Latin token, each ideograph is one word
    assert count_words("Hello, 世界!") == 3


def test_fenced_code_block_only_yields_zero():
    assert count_words("```code block```") == 0
    assert count_words("```python\nprint('hi')\n```") == 0


def test_inline_code_removed():
    assert count_words("use `rm -rf` now") == 2


def test_links_keep_text_images_dropped():
    assert count_words("Check [the docs](http://example.com/a)") == 3
    assert count_words("![diagram](img/arch.png)") == 0


def test_block_markers_removed():
    text = "# Title\n- item one\n> quote"
    assert count_words(text) == 4
    assert "#" not in strip_markdown(text)


def test_apostrophe_inside_word():
    assert count_words("don't stop") == 2


def test_html_and_emphasis_removed():
    assert count_words("<b>bold</b> text") == 2
    assert count_words("**bold** _it_ ~~gone~~") == 3


@pytest.mark.parametrize("text,expected", [
    ("Python 3 很好", 4),
    ("v2.0 release", 3),
    ("  \n\t ", 0),
])
def test_mixed_content(text, expected):
    assert count_words(text) == expected


def test_deterministic():
    body = "## Notes\nSome *markdown* with 中文 and [links](x)."
    assert count_words(body) == count_words(body)
