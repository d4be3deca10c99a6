"""Scorers - each contributes one named score to every Answer or Passage."""

import logging
import re
from typing import Optional, Set

from ..models import Answer, Passage, Question, normalize_text
from .base import AnswerScorer, PassageScorer

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"\w+")
STOPWORDS = frozenset("""
a an and are as at be by for from has he her his in is it its of on or she
that the this to was were what when where which who whom why will with how
""".split())

MONTH_PATTERN = re.compile(
    r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?|\d{1,2}",
    re.IGNORECASE,
)
YEAR_PATTERN = re.compile(r"\d{2}|\d{4}")
DAY_PATTERN = re.compile(r"\d{1,2}(?:st|nd|rd|th)?", re.IGNORECASE)
DATE_SEPARATOR = re.compile(r"[-/,\s]+")


def content_words(text: str) -> Set[str]:
    return {
        w for w in WORD_PATTERN.findall(text.lower())
        if len(w) > 1 and w not in STOPWORDS
    }


class Correct(AnswerScorer):
    """Training label: whether the candidate matches the known answer.

    Withheld when the question has no known answer.
    """

    name = "correct"

    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        if question.answer is None:
            return None
        known = normalize_text(question.answer)
        candidate = answer.key
        if not known or not candidate:
            return 0.0
        return 1.0 if (known in candidate or candidate in known) else 0.0


def maybe_year(text: str) -> bool:
    return YEAR_PATTERN.fullmatch(text) is not None


def maybe_month(text: str) -> bool:
    return MONTH_PATTERN.fullmatch(text) is not None


def maybe_day(text: str) -> bool:
    return DAY_PATTERN.fullmatch(text) is not None


def maybe_date(text: str) -> bool:
    """Month and day, or year and month, among the first three tokens."""
    tokens = [t for t in DATE_SEPARATOR.split(text.strip()) if t][:3]
    if len(tokens) < 2:
        return False
    years = any(maybe_year(t) for t in tokens)
    months = any(maybe_month(t) for t in tokens)
    days = any(maybe_day(t) for t in tokens)
    return (months and days) or (years and months)


class DateMatches(AnswerScorer):
    """Whether the question asks for a date and the answer looks like one."""

    name = "date_matches"

    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        lat = question.simple_lat.lower()
        text = answer.text.strip()
        if lat == "year":
            return 1.0 if maybe_year(text) else 0.0
        if lat in ("date", "day"):
            return 1.0 if maybe_date(text) else 0.0
        return 0.0


class PassageCount(AnswerScorer):
    name = "passage_count"

    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        return float(len(answer.passages))


class SearchRank(AnswerScorer):
    """Reciprocal of the best backend rank among supporting passages."""

    name = "search_rank"

    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        ranks = [p.rank for p in answer.passages if p.rank]
        if not ranks:
            return None
        return 1.0 / min(ranks)


class AnswerInPassage(AnswerScorer):
    """Fraction of supporting passages whose body mentions the candidate."""

    name = "answer_in_passage"

    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        if not answer.passages:
            return None
        key = answer.key
        hits = sum(1 for p in answer.passages if key and key in normalize_text(p.text))
        return hits / len(answer.passages)


class PassageTermMatch(PassageScorer):
    """Fraction of the question's content words found in the passage."""

    name = "passage_term_match"

    def score_passage(self, question: Question, passage: Passage) -> Optional[float]:
        wanted = content_words(question.text)
        if not wanted:
            return None
        found = content_words(passage.title + " " + passage.text)
        return len(wanted & found) / len(wanted)
