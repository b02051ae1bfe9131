import pytest

from linebridge.core.text import normalize, tokenize, truncate_reply


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        ("", ""),
        ("  hello  ", "hello"),
        ("報\u200b價\u200c流\u200d程\ufeff", "報價流程"),
        ("\ufeff  spaced\u200b  ", "spaced"),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_normalize_caps_length_before_trimming():
    text = normalize("a" * 2500)
    assert len(text) == 2000

    padded = normalize("x" * 1999 + "   " + "y" * 10)
    assert padded == "x" * 1999


def test_normalize_never_leaves_zero_width_characters():
    raw = ("\u200b" * 3000) + "答案" + "\u200d"
    text = normalize(raw)
    assert text == "答案"
    assert not any(ch in text for ch in "\u200b\u200c\u200d\ufeff")


def test_tokenize_splits_latin_words_and_ideographs():
    assert tokenize("Does it support macOS 12?") == {"does", "it", "support", "macos", "12"}
    assert tokenize("請問報價") == {"請", "問", "報", "價"}
    assert tokenize("1-2個工作天") == {"1", "2", "個", "工", "作", "天"}


def test_tokenize_ignores_punctuation():
    assert tokenize("？！、。") == set()


def test_truncate_reply():
    assert len(truncate_reply("字" * 6000)) == 4900
    assert truncate_reply("short") == "short"
    assert truncate_reply(None) == ""


@pytest.mark.parametrize(
    "text, expected",
    [
        ("re\u0301sume\u0301", {"résumé"}),
        ("résumé", {"résumé"}),
        ("Цена тарифа", {"цена", "тарифа"}),
        ("가격 문의", {"가격", "문의"}),
        ("ราคา", {"ร", "า", "ค"}),
        ("ＭａｃＯＳ １２", {"macos", "12"}),
        ("snake_case", {"snake", "case"}),
    ],
)
def test_tokenize_handles_non_ascii_scripts(text, expected):
    assert tokenize(text) == expected
