"""Search stage - turns question text into passages from external backends."""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..models import Passage
from .base import Searcher

logger = logging.getLogger(__name__)


class SerperSearcher(Searcher):
    """Web search through the Serper.dev API."""

    name = "serper"
    url = "https://google.serper.dev/search"

    def __init__(self, api_key: Optional[str], num_results: int = 10, timeout: float = 30):
        self.api_key = api_key
        self.num_results = num_results
        self.timeout = timeout
        self.session = requests.Session()

    def query(self, text: str) -> List[Passage]:
        """
        Execute a search using Serper API.

        Args:
            text: Question text to search for

        Returns:
            List of Passage objects, titled by result title

        Raises:
            Exception if the API key is missing or the API call fails
        """
        if not self.api_key:
            raise Exception("SERPER_API_KEY not found in environment")

        headers = {
            'X-API-KEY': self.api_key,
            'Content-Type': 'application/json'
        }
        payload = {'q': text, 'num': self.num_results}

        try:
            logger.debug(f"Calling Serper API: query={text}")
            response = self.session.post(self.url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Serper API request failed: {e}")
            raise

        passages = self._parse_response(data)
        if len(passages) > self.num_results:
            passages = passages[:self.num_results]
        logger.debug(f"Serper API returned {len(passages)} passages")
        return passages

    def _parse_response(self, data: Dict[str, Any]) -> List[Passage]:
        passages = []
        for i, item in enumerate(data.get('organic', [])):
            title = item.get('title', '')
            if not title:
                continue
            passages.append(Passage(
                title=title,
                text=item.get('snippet', ''),
                source=self.name,
                rank=i + 1,
                reference=item.get('link'),
            ))
        return passages


class TavilySearcher(Searcher):
    """Web search through the Tavily API (free tier without a key)."""

    name = "tavily"
    url = "https://api.tavily.com/search"

    def __init__(self, api_key: Optional[str] = None, num_results: int = 10, timeout: float = 30):
        self.api_key = api_key
        self.num_results = num_results
        self.timeout = timeout
        self.session = requests.Session()

    def query(self, text: str) -> List[Passage]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        payload = {
            'query': text,
            'search_depth': 'basic',
            'include_answer': False,
            'max_results': self.num_results,
        }

        try:
            logger.debug(f"Calling Tavily API: query={text}")
            response = self.session.post(self.url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"Tavily API request failed: {e}")
            raise

        passages = []
        for i, item in enumerate(data.get('results', [])[:self.num_results]):
            if not item.get('title'):
                continue
            passages.append(Passage(
                title=item['title'],
                text=item.get('content', ''),
                source=self.name,
                rank=i + 1,
                reference=item.get('url'),
            ))
        return passages


class SearchCache:
    """SQLite store of search results keyed by engine and query text."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self):
        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    engine TEXT NOT NULL,
                    query TEXT NOT NULL,
                    results TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (engine, query)
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def get(self, engine: str, query: str) -> Optional[List[Passage]]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT results FROM cache WHERE engine = ? AND query = ?",
                (engine, query),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return [Passage.from_dict(item) for item in json.loads(row[0])]

    def put(self, engine: str, query: str, passages: Sequence[Passage]) -> None:
        payload = json.dumps([p.to_dict() for p in passages])
        with self._lock:
            conn = self._connect()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO cache (engine, query, results, created_at) VALUES (?, ?, ?, ?)",
                    (engine, query, payload, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
            finally:
                conn.close()


class CachingSearcher(Searcher):
    """Wraps another searcher, answering repeated queries from a SearchCache."""

    def __init__(self, inner: Searcher, cache: SearchCache, name: Optional[str] = None):
        self.inner = inner
        self.cache = cache
        self.name = name or inner.name

    def query(self, text: str) -> List[Passage]:
        cached = self.cache.get(self.name, text)
        if cached is not None:
            logger.debug(f"Cache hit for {self.name}: {text[:60]}")
            return cached
        passages = self.inner.query(text)
        self.cache.put(self.name, text, passages)
        return passages
