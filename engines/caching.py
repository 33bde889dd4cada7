"""Bounded cache for writing analyses keyed by the analysed text."""

import hashlib
from threading import Lock
from typing import Dict, List, Optional

from schemas import WritingAnalysis


class AnalysisCache:
    """Thread-safe LRU cache for analyses with size limit."""

    def __init__(self, max_size: int = 100):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._cache: Dict[str, WritingAnalysis] = {}
        self._access_order: List[str] = []
        self._max_size = max_size
        self._lock = Lock()

    def add(self, text: str, analysis: WritingAnalysis) -> None:
        """Add an analysis to the cache with LRU eviction."""
        key = self._make_key(text)
        with self._lock:
            if key in self._cache:
                self._access_order.remove(key)
            elif len(self._cache) >= self._max_size:
                # Evict least recently used
                lru_key = self._access_order.pop(0)
                self._cache.pop(lru_key, None)

            self._cache[key] = analysis
            self._access_order.append(key)

    def get(self, text: str) -> Optional[WritingAnalysis]:
        """Retrieve an analysis from the cache, updating access order."""
        key = self._make_key(text)
        with self._lock:
            analysis = self._cache.get(key)
            if analysis is not None:
                # Move to most recently used
                self._access_order.remove(key)
                self._access_order.append(key)
            return analysis

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._access_order.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @staticmethod
    def _make_key(text: str) -> str:
        return hashlib.md5(text.encode("utf-8")).hexdigest()
