"""Stored questions and search-result dataset generation."""

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from .models import Question
from .stages import SearchCache, Searcher

logger = logging.getLogger(__name__)


class QuestionSource:
    """Questions with known answers and categories, read from SQLite."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def ensure_schema(self):
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS questions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    question TEXT NOT NULL,
                    answer TEXT,
                    category TEXT
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def add(self, text: str, answer: str, category: str = "") -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO questions (question, answer, category) VALUES (?, ?, ?)",
                (text, answer, category),
            )
            conn.commit()
        finally:
            conn.close()

    def fetch(self, conditions: str = "", params: Sequence = ()) -> Iterator[Question]:
        """Yield distinct stored questions.

        Args:
            conditions: SQL appended after the select, e.g. ``"LIMIT ?"``
            params: Parameters bound into ``conditions``
        """
        sql = f"SELECT DISTINCT question, answer, category FROM questions {conditions}"
        conn = self._connect()
        try:
            rows = conn.execute(sql, tuple(params)).fetchall()
        finally:
            conn.close()
        for text, answer, category in rows:
            yield Question.known(text, answer, category)


def generate_search_dataset(
    questions: Iterable[Question],
    searchers: Sequence[Searcher],
    cache: SearchCache,
    workers: int = 8,
) -> int:
    """Run every searcher for every question and store results in the cache.

    Failures for one question are logged and skipped.

    Returns:
        Number of questions whose results were all stored
    """
    def collect(question: Question) -> None:
        for searcher in searchers:
            passages = searcher.query(question.text)
            cache.put(searcher.name, question.text, passages)

    completed = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_question = {executor.submit(collect, q): q for q in questions}
        for future in as_completed(future_to_question):
            question = future_to_question[future]
            try:
                future.result()
                completed += 1
            except Exception as e:
                logger.error(f"✗ Search failed for '{question.text[:60]}': {e}")

    logger.info(f"Search dataset complete: {completed}/{len(future_to_question)} questions")
    return completed
