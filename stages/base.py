"""Capability contracts for pipeline stages.

A Searcher turns question text into Passages. A Researcher transforms a
Question in place and runs strictly in order. A Scorer writes one named
score onto every Answer (AnswerScorer) or every Passage (PassageScorer).
"""

from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

from ..models import Answer, Passage, Question


T = TypeVar("T")


class Searcher(ABC):
    """Queries one search backend.

    ``query`` returns an empty list when there are no results and raises
    only when the backend itself failed.
    """

    name: str = "searcher"

    @abstractmethod
    def query(self, text: str) -> List[Passage]:
        ...


class Researcher(ABC):
    """An ordered transformation over a Question.

    One instance is shared by every pipeline in a pool, so implementations
    that keep state across calls must lock it themselves.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def process(self, question: Question) -> None:
        ...

    def complete(self) -> None:
        """Called after ``process`` has run for the questions in flight."""


class Scorer(ABC):
    """Contributes one named score per Answer or Passage."""

    name: str = "scorer"

    @abstractmethod
    def score_question(self, question: Question, executor: Optional[Executor] = None) -> None:
        ...


def _evaluate(
    items: Iterable[T],
    func: Callable[[T], Optional[float]],
    executor: Optional[Executor],
) -> Tuple[List[Tuple[T, Optional[float]]], Optional[BaseException]]:
    """Run ``func`` over every item, collecting values and the first error.

    Every item is attempted even when an earlier one raised.
    """
    values: List[Tuple[T, Optional[float]]] = []
    first_error: Optional[BaseException] = None
    items = list(items)

    if executor is None or len(items) < 2:
        for item in items:
            try:
                values.append((item, func(item)))
            except Exception as e:
                first_error = first_error or e
        return values, first_error

    futures = [(item, executor.submit(func, item)) for item in items]
    for item, future in futures:
        try:
            values.append((item, future.result()))
        except Exception as e:
            first_error = first_error or e
    return values, first_error


class AnswerScorer(Scorer):
    """Scores each Answer independently."""

    @abstractmethod
    def score_answer(self, question: Question, answer: Answer) -> Optional[float]:
        ...

    def score_question(self, question: Question, executor: Optional[Executor] = None) -> None:
        values, error = _evaluate(
            question.answers,
            lambda answer: self.score_answer(question, answer),
            executor,
        )
        # Scores are written from the calling thread only.
        for answer, value in values:
            answer.set_score(self.name, value)
        if error is not None:
            raise error


class PassageScorer(Scorer):
    """Scores each Passage; the owning Answer receives the best passage score."""

    @abstractmethod
    def score_passage(self, question: Question, passage: Passage) -> Optional[float]:
        ...

    def score_question(self, question: Question, executor: Optional[Executor] = None) -> None:
        pairs = [(answer, passage) for answer in question.answers for passage in answer.passages]
        values, error = _evaluate(
            pairs,
            lambda pair: self.score_passage(question, pair[1]),
            executor,
        )
        best = {}
        for (answer, passage), value in values:
            passage.set_score(self.name, value)
            if value is not None:
                current = best.get(id(answer))
                best[id(answer)] = value if current is None else max(current, value)
        for answer in question.answers:
            answer.set_score(self.name, best.get(id(answer)))
        if error is not None:
            raise error
