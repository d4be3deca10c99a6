"""Data models for the question answering pipeline.

A Question aggregates candidate Answers. Each Answer aggregates named scores
and the Passages that support it. Every pipeline stage mutates these objects
in place.
"""

import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple


def normalize_text(text: str) -> str:
    """Collapse whitespace and case-fold, used to compare candidate texts."""
    return " ".join(text.split()).casefold()


class QType(Enum):
    """Question type (QClass) of a question."""
    FACTOID = "factoid"
    FITB = "fitb"
    COMMON_BONDS = "common_bonds"
    ANAGRAM = "anagram"
    BEFORE_AND_AFTER = "before_and_after"
    QUOTATION = "quotation"


@dataclass
class Blank:
    """Character span of one blank (``___``) in a question."""
    begin: int
    end: int


@dataclass
class FitbAnnotations:
    """Blank spans and the text sections surrounding them."""
    blanks: List[Blank] = field(default_factory=list)
    section1_begin: int = 0
    section1_end: int = 0
    section2_begin: int = 0
    section2_end: int = 0

    def section1(self, text: str) -> str:
        return text[self.section1_begin:self.section1_end].strip(' "')

    def section2(self, text: str) -> str:
        return text[self.section2_begin:self.section2_end].strip(' "')


class _Scored:
    """Named score accumulator shared by Answers and Passages."""

    scores: Dict[str, float]

    def set_score(self, name: str, value: Optional[float]) -> None:
        """Write a named score. ``None`` means withheld and records nothing."""
        if value is None:
            return
        self.scores[name] = float(value)

    def get_score(self, name: str) -> Optional[float]:
        """Read a named score, or ``None`` when it was never written."""
        return self.scores.get(name)


@dataclass(eq=False)
class Passage(_Scored):
    """A retrieved span of text with provenance."""
    title: str
    text: str = ""
    source: str = ""
    rank: Optional[int] = None
    reference: Optional[str] = None
    scores: Dict[str, float] = field(default_factory=dict)

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.text, self.source)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "text": self.text,
            "source": self.source,
            "rank": self.rank,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Passage":
        return cls(
            title=data.get("title", ""),
            text=data.get("text", ""),
            source=data.get("source", ""),
            rank=data.get("rank"),
            reference=data.get("reference"),
        )


@dataclass(eq=False)
class Answer(_Scored):
    """A candidate answer with its supporting passages and named scores."""
    text: str
    passages: List[Passage] = field(default_factory=list)
    scores: Dict[str, float] = field(default_factory=dict)
    _question_ref: Optional[weakref.ReferenceType] = field(
        default=None, init=False, repr=False
    )

    @property
    def question(self) -> Optional["Question"]:
        """The owning question, if it is still alive."""
        if self._question_ref is None:
            return None
        return self._question_ref()

    def attach(self, question: "Question") -> None:
        self._question_ref = weakref.ref(question)

    @property
    def key(self) -> str:
        return normalize_text(self.text)

    def add_passage(self, passage: Passage) -> bool:
        """Attach a passage unless an identical one is already attached."""
        if any(p.identity == passage.identity for p in self.passages):
            return False
        self.passages.append(passage)
        return True

    def absorb(self, other: "Answer") -> None:
        """Fold a duplicate answer into this one, keeping existing scores."""
        for passage in other.passages:
            self.add_passage(passage)
        for name, value in other.scores.items():
            self.scores.setdefault(name, value)

    def to_json(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "scores": dict(self.scores),
            "passages": len(self.passages),
        }


@dataclass(eq=False)
class Question:
    """The unit of work flowing through the pipeline."""
    raw_text: str
    text: str = ""
    answer: Optional[str] = None
    category: str = ""
    simple_lat: str = ""
    qtype: QType = QType.FACTOID
    fitb: FitbAnnotations = field(default_factory=FitbAnnotations)
    answers: List[Answer] = field(default_factory=list)
    _seen: Set[Tuple[str, str]] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self):
        if not self.text:
            self.text = self.raw_text

    @classmethod
    def known(cls, text: str, answer: Optional[str], category: str = "") -> "Question":
        """Rebuild a stored question whose correct answer is known."""
        return cls(raw_text=text, answer=answer, category=category or "")

    def find_answer(self, text: str) -> Optional[Answer]:
        key = normalize_text(text)
        for answer in self.answers:
            if answer.key == key:
                return answer
        return None

    def add_answer(self, answer: Answer) -> Answer:
        """Add a candidate, merging into an existing one with the same text."""
        existing = self.find_answer(answer.text)
        if existing is not None:
            if existing is not answer:
                existing.absorb(answer)
            return existing
        answer.attach(self)
        self.answers.append(answer)
        return answer

    def add_passages(self, passages: Iterable[Passage]) -> None:
        """Promote search results into answers keyed by passage title.

        Passages already seen on this question (same text and source) are
        dropped, even when a searcher gave them a different title.
        """
        for passage in passages:
            if passage.identity in self._seen:
                continue
            self._seen.add(passage.identity)
            answer = self.find_answer(passage.title)
            if answer is None:
                answer = Answer(text=passage.title)
                answer.attach(self)
                self.answers.append(answer)
            answer.add_passage(passage)

    def merge_duplicates(self) -> None:
        """Re-establish one answer per candidate text after texts changed."""
        merged: Dict[str, Answer] = {}
        for answer in self.answers:
            if answer.key in merged:
                merged[answer.key].absorb(answer)
            else:
                merged[answer.key] = answer
        self.answers = list(merged.values())
        for answer in self.answers:
            answer.attach(self)

    def ranked_answers(self, score_name: str = "combined") -> List[Answer]:
        """Answers ordered by a score, highest first; absent scores last."""
        def sort_key(answer: Answer):
            score = answer.get_score(score_name)
            return (score is None, -(score or 0.0))
        return sorted(self.answers, key=sort_key)

    def to_json(self, score_name: str = "combined") -> List[Dict[str, Any]]:
        return [a.to_json() for a in self.ranked_answers(score_name)]
