"""Approximate name search over the synthesized keys of a roster."""

import logging
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

from rapidfuzz import fuzz, process

from reconcile import IndexedStudent

log = logging.getLogger(__name__)

# Hits less similar than this (0 = identical, 1 = nothing in common) are dropped
DEFAULT_MAX_SCORE = 0.3


@dataclass(frozen=True)
class RankedHit:
    """A search hit with its dissimilarity score (0.0 – 1.0)."""

    record: IndexedStudent
    score: float


class FuzzyIndex(Protocol):
    """Anything that can rank roster records against a free-text query."""

    def search(self, query: str, limit: int) -> list[RankedHit]:
        ...


class NameIndex:
    """Fuzzy index keyed on every name variant of every roster student.

    Each record is searchable under "FIRST LAST", "LAST FIRST",
    "LAST, FIRST" and the bare name fields, so a query in any common
    order can hit. A record's score is the one of its best key.
    """

    def __init__(
        self,
        records: Sequence[IndexedStudent],
        scorer: Callable[..., float] = fuzz.ratio,
        max_score: float = DEFAULT_MAX_SCORE,
    ) -> None:
        self._records = list(records)
        self._scorer = scorer
        self._max_score = max_score

        # Flat key list; _owners maps each key back to its record
        self._keys: list[str] = []
        self._owners: list[int] = []
        for pos, record in enumerate(self._records):
            for key in record.search_keys:
                self._keys.append(key)
                self._owners.append(pos)

        log.debug(
            "Index built: %d students, %d keys", len(self._records), len(self._keys),
        )

    def __len__(self) -> int:
        return len(self._records)

    def search(self, query: str, limit: int = 5) -> list[RankedHit]:
        """Return up to ``limit`` records ranked by ascending dissimilarity.

        Args:
            query: Free-text name, upper case.
            limit: Maximum number of hits.

        Returns:
            Hits ordered best first; ties keep roster order.
        """
        query = query.strip()
        if not query or not self._keys or limit <= 0:
            return []

        min_similarity = round((1.0 - self._max_score) * 100, 4)
        matches = process.extract(
            query,
            self._keys,
            scorer=self._scorer,
            processor=None,
            limit=None,
            score_cutoff=min_similarity,
        )

        best: dict[int, float] = {}
        for _key, similarity, key_pos in matches:
            owner = self._owners[key_pos]
            if similarity > best.get(owner, -1.0):
                best[owner] = similarity

        ranked = sorted(best.items(), key=lambda item: (-item[1], item[0]))
        return [
            RankedHit(record=self._records[pos], score=round(1.0 - sim / 100.0, 4))
            for pos, sim in ranked[:limit]
        ]
