"""Researchers - ordered, in-place transformations of a Question."""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from bs4 import BeautifulSoup

from ..models import Question, QType
from .base import Researcher

logger = logging.getLogger(__name__)

REF_PATTERN = re.compile(r"<ref[^>]*?(?:/>|>.*?</ref>)", re.DOTALL | re.IGNORECASE)
WIKILINK_PATTERN = re.compile(r"\[\[(?:[^\]|]*\|)?([^\]]+)\]\]")
TEMPLATE_PATTERN = re.compile(r"\{\{[^{}]*\}\}")
EMPHASIS_PATTERN = re.compile(r"'{2,}")
TITLE_SUFFIX_PATTERN = re.compile(
    r"\s+[-–|]\s+[^-–|]*(?:Wikipedia|Wiktionary|Britannica|Encyclopedia)[^-–|]*$",
    re.IGNORECASE,
)
DISAMBIGUATION_PATTERN = re.compile(r"\s*\(disambiguation\)$", re.IGNORECASE)


def clean_markup(text: str) -> str:
    """Strip HTML and MediaWiki markup, leaving plain text."""
    text = REF_PATTERN.sub("", text)
    if "<" in text:
        soup = BeautifulSoup(text, "html.parser")
        for tag in soup(["script", "style"]):
            tag.decompose()
        text = soup.get_text(separator=" ")
    text = WIKILINK_PATTERN.sub(r"\1", text)
    text = TEMPLATE_PATTERN.sub("", text)
    text = EMPHASIS_PATTERN.sub("", text)
    return " ".join(text.split())


def trim_title(title: str) -> str:
    """Remove site names and disambiguation suffixes from a result title."""
    title = TITLE_SUFFIX_PATTERN.sub("", clean_markup(title))
    title = DISAMBIGUATION_PATTERN.sub("", title)
    return title.strip()


class MarkupTrimmer(Researcher):
    """Cleans markup from passages and site noise from candidate texts."""

    def process(self, question: Question) -> None:
        for answer in question.answers:
            trimmed = trim_title(answer.text)
            if trimmed:
                answer.text = trimmed
            for passage in answer.passages:
                passage.title = trim_title(passage.title) or passage.title
                passage.text = clean_markup(passage.text)
        question.merge_duplicates()


class Merge(Researcher):
    """Merges answers whose candidate texts became equal."""

    def process(self, question: Question) -> None:
        before = len(question.answers)
        question.merge_duplicates()
        if len(question.answers) != before:
            logger.debug(f"Merged {before - len(question.answers)} duplicate answers")


class FitbExtractor(Researcher):
    """For fill-in-the-blank questions, replaces each candidate with the
    passage text that fills the blank."""

    max_words = 6

    def extract(self, passage_text: str, before: str, after: str) -> Optional[str]:
        lowered = passage_text.lower()
        if before:
            start = lowered.find(before.lower())
            if start < 0:
                return None
            start += len(before)
        else:
            start = 0

        if after:
            end = lowered.find(after.lower(), start)
            if end < 0:
                return None
            candidate = passage_text[start:end]
        else:
            candidate = " ".join(passage_text[start:].split()[:3])

        candidate = candidate.strip(" \"',.;:")
        if not candidate or len(candidate.split()) > self.max_words:
            return None
        return candidate

    def process(self, question: Question) -> None:
        if question.qtype != QType.FITB:
            return
        before = question.fitb.section1(question.raw_text)
        after = question.fitb.section2(question.raw_text)
        if not before and not after:
            return

        for answer in question.answers:
            for passage in answer.passages:
                filled = self.extract(passage.text, before, after)
                if filled:
                    answer.text = filled
                    break
        question.merge_duplicates()


class CombineScores(Researcher):
    """Combines every named score into a single ranking score.

    Linear model with logistic squashing. Withheld scores contribute
    nothing, and names without a weight are ignored.
    """

    def __init__(self, weights: Dict[str, float], intercept: float = 0.0, name: str = "combined"):
        self.score_name = name
        self.names = sorted(n for n in weights if n != name)
        self.weights = np.array([weights[n] for n in self.names], dtype=np.float64)
        self.intercept = intercept

    def combine(self, scores: Dict[str, float]) -> float:
        values = np.array([scores.get(n, 0.0) for n in self.names], dtype=np.float64)
        present = np.array([n in scores for n in self.names], dtype=bool)
        z = self.intercept + float(np.dot(self.weights[present], values[present]))
        return float(1.0 / (1.0 + np.exp(-z)))

    def process(self, question: Question) -> None:
        for answer in question.answers:
            answer.set_score(self.score_name, self.combine(answer.scores))


class TrainingTee(Researcher):
    """Buffers scored answers of questions with known answers and writes them
    out as JSON lines on ``complete``."""

    def __init__(self, output_path: Path):
        self.output_path = Path(output_path)
        self._rows: List[dict] = []
        self._lock = threading.Lock()

    def process(self, question: Question) -> None:
        if question.answer is None:
            return
        rows = [
            {
                "question": question.raw_text,
                "category": question.category,
                "candidate": answer.text,
                "scores": dict(answer.scores),
            }
            for answer in question.answers
        ]
        with self._lock:
            self._rows.extend(rows)

    def complete(self) -> None:
        with self._lock:
            rows, self._rows = self._rows, []
            if not rows:
                return
            with open(self.output_path, "a", encoding="utf-8") as f:
                for row in rows:
                    f.write(json.dumps(row) + "\n")
        logger.info(f"Wrote {len(rows)} training rows to {self.output_path}")
