"""Question classification: question type, fill-in-the-blank spans, simple LAT."""

import logging
import re
from typing import Optional

from .models import Blank, FitbAnnotations, Question, QType

logger = logging.getLogger(__name__)

BLANK_PATTERN = re.compile(r"_+")
QUOTE_PATTERN = re.compile(r'"')
QUOTATION_PATTERN = re.compile(r'"(?:[^"\r\n\s]+\b[:;?!,.]?\s*){3,}"')

ANAGRAM_MARKERS = ("ANAGRAM", "SCRAMBLED", "JUMBLED")

# Ordered: the first matching rule wins.
LAT_RULES = [
    (re.compile(r"\b(?:what|which|in what) year\b", re.IGNORECASE), "year"),
    (re.compile(r"\b(?:what date|on what day)\b", re.IGNORECASE), "date"),
    (re.compile(r"\bwhat day\b", re.IGNORECASE), "day"),
    (re.compile(r"^\s*when\b", re.IGNORECASE), "date"),
    (re.compile(r"^\s*who\b", re.IGNORECASE), "person"),
    (re.compile(r"^\s*where\b", re.IGNORECASE), "place"),
]


def find_blanks(text: str) -> Optional[FitbAnnotations]:
    """Locate blanks and the quoted sections around them.

    Section 1 starts at the last quote before the first blank (or the start
    of the text) and ends at the first blank. Section 2 starts after the last
    blank and runs through the next quote (or to the end of the text).
    Returns None when the text has no blanks.
    """
    blanks = [Blank(m.start(), m.end()) for m in BLANK_PATTERN.finditer(text)]
    if not blanks:
        return None

    annotations = FitbAnnotations(blanks=blanks)
    first_begin = blanks[0].begin
    annotations.section1_end = first_begin
    for quote in QUOTE_PATTERN.finditer(text, 0, first_begin):
        annotations.section1_begin = quote.start()

    annotations.section2_begin = blanks[-1].end
    closing = QUOTE_PATTERN.search(text, annotations.section2_begin)
    annotations.section2_end = closing.end() if closing else len(text)
    return annotations


def is_common_bonds(category: str) -> bool:
    return "COMMON BONDS" in category.upper()


def is_anagram(category: str) -> bool:
    upper = category.upper()
    return any(marker in upper for marker in ANAGRAM_MARKERS)


def is_before_and_after(category: str) -> bool:
    return "BEFORE & AFTER" in category.upper()


def is_quotation(text: str) -> bool:
    """A quoted phrase of at least three words."""
    return QUOTATION_PATTERN.search(text) is not None


def detect_simple_lat(text: str) -> str:
    """Guess a coarse lexical answer type from the question wording."""
    for pattern, lat in LAT_RULES:
        if pattern.search(text):
            return lat
    return ""


class QuestionAnalyzer:
    """Per-pipeline question analysis resource.

    Each pipeline instance owns one analyzer; it is not shared across
    threads.
    """

    def __init__(self):
        self.analyzed = 0

    def detect_type(self, question: Question) -> QType:
        annotations = find_blanks(question.raw_text)
        if annotations is not None:
            question.fitb = annotations
            return QType.FITB
        if is_common_bonds(question.category):
            return QType.COMMON_BONDS
        if is_anagram(question.category):
            return QType.ANAGRAM
        if is_before_and_after(question.category):
            return QType.BEFORE_AND_AFTER
        if is_quotation(question.raw_text):
            return QType.QUOTATION
        return QType.FACTOID

    def analyze(self, question: Question) -> Question:
        """Set question type, blank annotations and simple LAT in place."""
        question.qtype = self.detect_type(question)
        if not question.simple_lat:
            question.simple_lat = detect_simple_lat(question.raw_text)
        self.analyzed += 1
        logger.debug(
            f"Analyzed question as {question.qtype.value} (lat={question.simple_lat!r})"
        )
        return question
