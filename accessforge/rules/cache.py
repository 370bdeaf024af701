"""
Bounded cache for rule evaluations.

Entries are keyed by (rule id, canonical finding, canonical context) and
evicted least-recently-used first once capacity is reached. An optional TTL
expires entries lazily on read.
"""

import json
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from accessforge.rules.models import RuleEvaluation

CacheKey = Tuple[str, str, str]


def make_key(rule_id: str, finding: Any, context: Any) -> CacheKey:
    """Build a deterministic key from a rule id, finding and context."""
    finding_json = json.dumps(finding, sort_keys=True, default=str)
    if hasattr(context, "model_dump"):
        context_json = json.dumps(context.model_dump(mode="json"), sort_keys=True, default=str)
    else:
        context_json = json.dumps(context, sort_keys=True, default=str)
    return rule_id, finding_json, context_json


class EvaluationCache:
    """Thread-safe LRU cache of frozen RuleEvaluation objects."""

    def __init__(self, capacity: int = 1000, ttl_seconds: Optional[float] = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._entries: "OrderedDict[CacheKey, Tuple[Optional[float], RuleEvaluation]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: CacheKey) -> Optional[RuleEvaluation]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            expiry, evaluation = entry
            if expiry is not None and time.monotonic() > expiry:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return evaluation

    def put(self, key: CacheKey, evaluation: RuleEvaluation) -> None:
        expiry = time.monotonic() + self.ttl_seconds if self.ttl_seconds else None
        with self._lock:
            self._entries[key] = (expiry, evaluation)
            self._entries.move_to_end(key)

            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)
                self._evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "size": len(self._entries),
                "capacity": self.capacity,
                "ttl_seconds": self.ttl_seconds,
            }
