"""Checking self-study answers against catalog entries.

Pinyin answers may be typed with tone marks ("nǐ hǎo"), tone numbers
("ni3hao3"), or a mix of both, with "v" or "u:" standing in for "ü".
Both sides are brought to one tone-marked form before comparing.
Definition answers match on keywords pulled from the dictionary gloss.
"""
import logging
import re
import unicodedata
from typing import List

from hanzisrs.models.models import Item

logger = logging.getLogger(__name__)

# Combining marks for tones 1-4; tone 5 (neutral) is unmarked
TONE_MARKS = {1: "\u0304", 2: "\u0301", 3: "\u030c", 4: "\u0300"}
_TONE_MARK_CHARS = frozenset(TONE_MARKS.values())

_NUMBERED_SYLLABLE = re.compile(r"([^\W\d_]+)([1-5])")
_SEPARATORS = re.compile(r"[\s\-'’·]+")
_ALTERNATIVES = re.compile(r"[;/]")
_DEFINITION_PARTS = re.compile(r"[;,/]|\s+or\s+")
_PARENTHETICAL = re.compile(r"\(([^)]*)\)")
_BRACKETED = re.compile(r"\[[^\]]*\]")

STOP_WORDS = frozenset({"a", "an", "the", "to", "of", "in", "on", "at", "for", "with", "by"})

PINYIN_PROMPTS = frozenset({"zh_to_pinyin"})
DEFINITION_PROMPTS = frozenset({"zh_to_en", "pinyin_to_en"})
CHARACTER_PROMPTS = frozenset({"pinyin_to_zh", "en_to_zh"})


def _has_tone_mark(syllable: str) -> bool:
    return any(ch in _TONE_MARK_CHARS for ch in unicodedata.normalize("NFD", syllable))


def _mark_syllable(syllable: str, tone: int) -> str:
    """Put the tone mark on the vowel standard pinyin spelling puts it on."""
    if tone == 5 or _has_tone_mark(syllable):
        return syllable

    if "a" in syllable:
        index = syllable.index("a")
    elif "e" in syllable:
        index = syllable.index("e")
    elif "ou" in syllable:
        index = syllable.index("o")
    else:
        vowels = [i for i, ch in enumerate(syllable) if ch in "iouü"]
        if not vowels:
            return syllable
        # "iu" marks the u and "ui" the i: both are the last vowel
        index = vowels[-1]

    return syllable[:index + 1] + TONE_MARKS[tone] + syllable[index + 1:]


def tone_numbers_to_marks(pinyin: str) -> str:
    """Rewrite numbered syllables with tone marks: "lv4 se4" -> "lǜ sè".

    Only the first digit after a syllable counts; stray digits are dropped.
    A syllable that already carries a mark keeps it.
    """
    text = unicodedata.normalize("NFC", pinyin.strip().lower())
    text = text.replace("u:", "ü").replace("v", "ü")
    text = _NUMBERED_SYLLABLE.sub(lambda m: _mark_syllable(m.group(1), int(m.group(2))), text)
    text = re.sub(r"\d", "", text)
    return unicodedata.normalize("NFC", text)


def normalize_pinyin(pinyin: str) -> str:
    """Canonical tone-marked pinyin without syllable separators."""
    return _SEPARATORS.sub("", tone_numbers_to_marks(pinyin))


def strip_tones(pinyin: str) -> str:
    """Pinyin letters only: tones and separators removed, "ü" kept."""
    decomposed = unicodedata.normalize("NFD", normalize_pinyin(pinyin))
    bare = "".join(ch for ch in decomposed if ch not in _TONE_MARK_CHARS)
    return unicodedata.normalize("NFC", bare)


def _pronunciations(correct: str) -> List[str]:
    return [p for p in (part.strip() for part in _ALTERNATIVES.split(correct)) if p]


def verify_pinyin(answer: str, correct: str) -> bool:
    """True if `answer` matches any of the `;` or `/` separated readings."""
    if not answer or not answer.strip() or not correct:
        return False
    given = normalize_pinyin(answer)
    return any(given == normalize_pinyin(reading) for reading in _pronunciations(correct))


def has_correct_syllables_but_wrong_tones(answer: str, correct: str) -> bool:
    if not answer or not answer.strip() or not correct:
        return False
    given = strip_tones(answer)
    syllables_match = any(given == strip_tones(reading) for reading in _pronunciations(correct))
    return syllables_match and not verify_pinyin(answer, correct)


def extract_keywords(definition: str) -> List[str]:
    """Whole glosses and their significant words, in order, without duplicates.

    Parenthetical notes are dropped unless they are all a gloss has, as with
    grammatical particles.
    """
    keywords = []
    for part in _DEFINITION_PARTS.split(definition.lower()):
        part = part.strip()
        if not part:
            continue

        cleaned = _PARENTHETICAL.sub("", part).strip()
        if not cleaned:
            match = _PARENTHETICAL.search(part)
            if match is None:
                continue
            cleaned = _BRACKETED.sub("", match.group(1)).strip()
            if not cleaned:
                continue

        keywords.append(cleaned)
        keywords.extend(word for word in cleaned.split() if word not in STOP_WORDS)

    return list(dict.fromkeys(keywords))


def verify_definition(answer: str, definition: str) -> bool:
    """True if the answer contains a keyword of the gloss, or sits inside one."""
    given = (answer or "").strip().lower()
    if not given or not definition:
        return False
    return any(keyword in given or given in keyword for keyword in extract_keywords(definition))


def verify_answer(answer: str, item: Item, prompt_kind: str) -> bool:
    """Check a self-study answer for the field `prompt_kind` asks for."""
    if prompt_kind in PINYIN_PROMPTS:
        correct = verify_pinyin(answer, item.pinyin or "")
        if not correct and has_correct_syllables_but_wrong_tones(answer, item.pinyin or ""):
            logger.info(f"Answer {answer!r} for item {item.id} has the right syllables but wrong tones")
        return correct
    if prompt_kind in DEFINITION_PROMPTS:
        return verify_definition(answer, item.definition or "")
    if prompt_kind in CHARACTER_PROMPTS:
        return bool(answer) and answer.strip() == item.text
    raise ValueError(f"Unknown prompt kind: {prompt_kind}")
