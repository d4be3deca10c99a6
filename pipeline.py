"""Question answering pipeline engine.

Each step takes and transforms a Question in place:

1. Searchers query every backend in parallel. Their passages are promoted
   into Answers, one Answer per distinct passage title.
2. Early researchers run strictly in order. There is no contract on what a
   researcher may change, so they never run in parallel.
3. Scorers write one named score each onto every Answer or Passage.
4. Late researchers run in order; score combination happens here.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .classification import QuestionAnalyzer
from .config import Config
from .errors import BackendUnavailable, StageFailure
from .models import Passage, Question
from .stages import (
    AnswerInPassage,
    CachingSearcher,
    CombineScores,
    Correct,
    DateMatches,
    FitbExtractor,
    MarkupTrimmer,
    Merge,
    PassageCount,
    PassageTermMatch,
    Researcher,
    Scorer,
    SearchCache,
    Searcher,
    SearchRank,
    SerperSearcher,
    TavilySearcher,
    TrainingTee,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineStages:
    """Ordered stage lists, built once at startup and shared by every
    pipeline instance."""

    searchers: Tuple[Searcher, ...] = ()
    early_researchers: Tuple[Researcher, ...] = ()
    scorers: Tuple[Scorer, ...] = ()
    late_researchers: Tuple[Researcher, ...] = ()
    search_timeout: Optional[float] = 30.0
    scoring_workers: int = 4
    analyzer_factory: Callable[[], QuestionAnalyzer] = QuestionAnalyzer

    def __post_init__(self):
        for name in ("searchers", "early_researchers", "scorers", "late_researchers"):
            object.__setattr__(self, name, tuple(getattr(self, name)))


class Pipeline:
    """One pipeline instance.

    An instance owns a question analyzer plus separate worker pools for
    searching and scoring, and must only run one ``ask`` at a time;
    ``PipelinePool`` enforces that.
    """

    def __init__(self, stages: PipelineStages):
        self.stages = stages
        self.analyzer = stages.analyzer_factory()
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, stages.scoring_workers),
            thread_name_prefix="pipeline-score",
        )
        self._search_executor = self._new_search_executor()

    def _new_search_executor(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(
            max_workers=max(1, len(self.stages.searchers)),
            thread_name_prefix="pipeline-search",
        )

    def ask(self, question: Union[str, Question]) -> Question:
        """Run the full pipeline and return the scored question.

        Searcher failures are logged and contribute nothing. Researcher and
        scorer failures raise StageFailure; the question may then be
        partially scored.
        """
        if isinstance(question, str):
            question = Question(question)
        logger.info(f"Asking: {question.raw_text[:100]}")
        self.analyzer.analyze(question)

        for passages in self._search(question):
            question.add_passages(passages)
        logger.debug(f"Search produced {len(question.answers)} candidate answers")

        self._research("early", self.stages.early_researchers, question)
        self._score(question)
        self._research("late", self.stages.late_researchers, question)

        logger.info(f"Answered with {len(question.answers)} candidates")
        return question

    def _search(self, question: Question) -> List[List[Passage]]:
        """Query every searcher concurrently and wait for all of them.

        Results come back in configured searcher order.
        """
        searchers = self.stages.searchers
        if not searchers:
            return []

        futures = [self._search_executor.submit(s.query, question.text) for s in searchers]
        done, not_done = wait(futures, timeout=self.stages.search_timeout)
        if not_done:
            # A hung query keeps its worker; abandon those threads so the
            # next ask starts every searcher on a free one.
            self._search_executor.shutdown(wait=False)
            self._search_executor = self._new_search_executor()

        results: List[List[Passage]] = []
        for searcher, future in zip(searchers, futures):
            if future not in done:
                future.cancel()
                error = BackendUnavailable(searcher.name, TimeoutError(f"no response in {self.stages.search_timeout}s"))
                logger.error(str(error))
                results.append([])
                continue
            try:
                passages = list(future.result())
            except Exception as e:
                logger.error(str(BackendUnavailable(searcher.name, e)))
                passages = []
            logger.debug(f"{searcher.name} returned {len(passages)} passages")
            results.append(passages)
        return results

    def _research(self, stage: str, researchers: Sequence[Researcher], question: Question) -> None:
        for researcher in researchers:
            try:
                researcher.process(question)
            except Exception as e:
                raise StageFailure(stage, researcher.name, e) from e
        for researcher in researchers:
            try:
                researcher.complete()
            except Exception as e:
                raise StageFailure(stage, researcher.name, e) from e

    def _score(self, question: Question) -> None:
        for scorer in self.stages.scorers:
            try:
                scorer.score_question(question, self._executor)
            except Exception as e:
                raise StageFailure("scoring", scorer.name, e) from e

    def close(self):
        self._search_executor.shutdown(wait=True)
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def default_stages(config: Config) -> PipelineStages:
    """The standard stage lists for serving."""
    searchers: List[Searcher] = [
        SerperSearcher(
            api_key=config.serper_api_key,
            num_results=config.search_results_per_query,
            timeout=config.search_timeout,
        ),
    ]
    if config.tavily_api_key:
        searchers.append(TavilySearcher(
            api_key=config.tavily_api_key,
            num_results=config.search_results_per_query,
            timeout=config.search_timeout,
        ))
    if config.search_cache_path:
        cache = SearchCache(config.search_cache_path)
        searchers = [CachingSearcher(s, cache) for s in searchers]

    early_researchers = [
        MarkupTrimmer(),  # Before candidate extraction
        Merge(),
        FitbExtractor(),
    ]

    scorers = [
        # Search engine echoes
        SearchRank(),
        PassageCount(),

        # Target label (withheld when no answer is known)
        Correct(),

        # Word overlap
        PassageTermMatch(),
        AnswerInPassage(),

        # Specialized
        DateMatches(),
    ]

    late_researchers: List[Researcher] = []
    if config.training_output:
        late_researchers.append(TrainingTee(config.training_output))
    late_researchers.append(CombineScores(config.score_weights, config.score_intercept))

    return PipelineStages(
        searchers=searchers,
        early_researchers=early_researchers,
        scorers=scorers,
        late_researchers=late_researchers,
        search_timeout=config.search_timeout,
    )
