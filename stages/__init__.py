"""Pipeline stages."""

from .base import AnswerScorer, PassageScorer, Researcher, Scorer, Searcher
from .searchers import CachingSearcher, SearchCache, SerperSearcher, TavilySearcher
from .researchers import CombineScores, FitbExtractor, MarkupTrimmer, Merge, TrainingTee
from .scorers import (
    AnswerInPassage,
    Correct,
    DateMatches,
    PassageCount,
    PassageTermMatch,
    SearchRank,
)

__all__ = [
    "Searcher",
    "Researcher",
    "Scorer",
    "AnswerScorer",
    "PassageScorer",
    "SerperSearcher",
    "TavilySearcher",
    "SearchCache",
    "CachingSearcher",
    "MarkupTrimmer",
    "Merge",
    "FitbExtractor",
    "CombineScores",
    "TrainingTee",
    "Correct",
    "DateMatches",
    "PassageCount",
    "SearchRank",
    "AnswerInPassage",
    "PassageTermMatch",
]
