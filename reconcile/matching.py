"""Two-stage matching of candidate names against a canonical roster."""

import logging
from typing import Callable, Iterable, Mapping, Optional, Sequence, Union

from reconcile import (
    CanonicalStudent,
    IndexedStudent,
    Matched,
    MatchPartition,
    MatchResult,
    ParsedName,
    PickerEntry,
    RankedSuggestion,
    SourceRow,
    Unmatched,
)
from reconcile.fuzzy import FuzzyIndex, NameIndex

log = logging.getLogger(__name__)

# Fuzzy hits at or above this confidence are accepted without review
AUTO_ACCEPT_CONFIDENCE = 80
SUGGESTION_LIMIT = 5
# The platform truncates long last names (around 20 characters); prefixes
# shorter than this are too ambiguous to accept as truncations
TRUNCATION_MIN_LENGTH = 15
EXACT_CONFIDENCE = 100
# 100 is reserved for rule-based matches
FUZZY_MAX_CONFIDENCE = 99


def _first_word(value: str) -> str:
    return value.split(' ', 1)[0]


def last_names_match(candidate_last: str, roster_last: str) -> bool:
    """Check if two last names match, accounting for compounds and truncation.

    Args:
        candidate_last: Last name from the source file (may be longer).
        roster_last: Last name from the roster (may be truncated).

    Returns:
        True if the names are considered the same.
    """
    if candidate_last == roster_last:
        return True

    # "LLIVISACA MALDONADO" vs "LLIVISACA"
    parts = candidate_last.split(' ')
    if len(parts) > 1 and parts[0] == roster_last:
        return True

    # "GARCIALOPEZFERNANDEZ" vs "GARCIALOPEZFERNAN"
    if (
        len(roster_last) >= TRUNCATION_MIN_LENGTH
        and candidate_last.startswith(roster_last)
    ):
        return True

    return False


def first_names_match(candidate_first: str, roster_first: str) -> bool:
    """Check if two first names match, accounting for middle names.

    Args:
        candidate_first: First name from the source file.
        roster_first: First name from the roster.

    Returns:
        True if the names are considered the same.
    """
    if candidate_first == roster_first:
        return True

    # One side carries a middle name: "ROAA ABDELGHANY" vs "ROAA"
    if candidate_first.startswith(roster_first + ' '):
        return True
    if roster_first.startswith(candidate_first + ' '):
        return True

    return _first_word(candidate_first) == _first_word(roster_first)


def score_to_confidence(score: float) -> int:
    """Convert a dissimilarity score (0 = identical) into a 0–100 confidence.

    Halves round up.
    """
    return int((1.0 - score) * 100 + 0.5)


Candidate = Union[ParsedName, SourceRow]


class StudentMatcher:
    """Resolves candidate names against one canonical roster.

    Matching runs in two stages:
    1. Exact match with tolerance for truncation and middle names
       (linear scan, first roster hit wins, confidence 100)
    2. Fuzzy search over all name variants; the best hit is accepted if
       its confidence reaches ``auto_accept``, otherwise the ranked hits
       are returned as suggestions.
    """

    def __init__(
        self,
        roster: Optional[Sequence[CanonicalStudent]] = None,
        auto_accept: int = AUTO_ACCEPT_CONFIDENCE,
        suggestion_limit: int = SUGGESTION_LIMIT,
        index_factory: Callable[[list[IndexedStudent]], FuzzyIndex] = NameIndex,
    ) -> None:
        self.auto_accept = auto_accept
        self.suggestion_limit = suggestion_limit
        self._index_factory = index_factory
        self._records: list[IndexedStudent] = []
        self._index: FuzzyIndex = index_factory([])
        if roster is not None:
            self.initialize(roster)

    @property
    def roster(self) -> list[CanonicalStudent]:
        return [r.student for r in self._records]

    def initialize(self, roster: Sequence[CanonicalStudent]) -> None:
        """(Re)build the exact-match list and the fuzzy index from a roster.

        Any previously indexed roster is discarded.
        """
        self._records = [IndexedStudent.from_student(s) for s in roster]
        self._index = self._index_factory(list(self._records))
        log.info("Roster indexed: %d students", len(self._records))

    def find_exact_match(self, candidate: ParsedName) -> Optional[CanonicalStudent]:
        """Return the first roster student satisfying both tolerance rules."""
        first = candidate.first_name.upper()
        last = candidate.last_name.upper()

        for record in self._records:
            if (
                last_names_match(last, record.last_name)
                and first_names_match(first, record.first_name)
            ):
                return record.student
        return None

    def find_fuzzy_matches(
        self,
        candidate: ParsedName,
        limit: Optional[int] = None,
    ) -> list[RankedSuggestion]:
        """Rank roster students by similarity to "FIRST LAST" of the candidate.

        Confidences are capped at ``FUZZY_MAX_CONFIDENCE``, so an identical
        key hit (e.g. a swapped first/last name) never reads as exact.
        """
        if limit is None:
            limit = self.suggestion_limit
        query = f'{candidate.first_name} {candidate.last_name}'.strip().upper()
        if not query:
            return []

        return [
            RankedSuggestion(
                student=hit.record.student,
                confidence=min(score_to_confidence(hit.score), FUZZY_MAX_CONFIDENCE),
            )
            for hit in self._index.search(query, limit)
        ]

    def match_one(
        self,
        candidate: ParsedName,
        original_name: Optional[str] = None,
        row: Optional[SourceRow] = None,
    ) -> MatchResult:
        """Match a single candidate.

        Args:
            candidate: Parsed name from the source file.
            original_name: Name as it appeared in the source; defaults to
                the candidate's full name.
            row: Source row the candidate came from, if any.

        Returns:
            Matched or Unmatched, never both.
        """
        if original_name is None:
            original_name = candidate.full_name

        if candidate.is_empty:
            return Unmatched(original_name, candidate, [], row)

        student = self.find_exact_match(candidate)
        if student is not None:
            return Matched(original_name, candidate, student, EXACT_CONFIDENCE, row)

        suggestions = self.find_fuzzy_matches(candidate)
        if suggestions and suggestions[0].confidence >= self.auto_accept:
            top = suggestions[0]
            log.debug(
                "Fuzzy match accepted: %s -> %s (%d%%)",
                original_name, top.student.id, top.confidence,
            )
            return Matched(
                original_name, candidate, top.student, top.confidence, row,
                match_type='FUZZY',
            )

        return Unmatched(original_name, candidate, suggestions, row)

    def match_all(self, candidates: Iterable[Candidate]) -> MatchPartition:
        """Match every candidate and split the results by outcome.

        Args:
            candidates: Parsed names or source rows.

        Returns:
            Partition whose lists keep the input order.
        """
        partition = MatchPartition()

        for candidate in candidates:
            if isinstance(candidate, SourceRow):
                result = self.match_one(
                    candidate.parsed_name, candidate.original_name, candidate,
                )
            else:
                result = self.match_one(candidate)

            if isinstance(result, Matched):
                partition.matched.append(result)
            else:
                partition.unmatched.append(result)

        log.info(
            "Matching finished: %d matched, %d unmatched",
            len(partition.matched), len(partition.unmatched),
        )
        return partition

    def list_for_manual_picker(self) -> list[PickerEntry]:
        """All roster students as picker options, sorted by "LAST, FIRST"."""
        entries = [
            PickerEntry(
                id=r.student.id,
                display_name=f'{r.student.last_name}, {r.student.first_name}',
                first_name=r.student.first_name,
                last_name=r.student.last_name,
            )
            for r in self._records
        ]
        return sorted(entries, key=lambda e: e.display_name)

    def apply_overrides(
        self,
        partition: MatchPartition,
        overrides: Mapping[str, str],
    ) -> MatchPartition:
        """Resolve unmatched entries with student ids chosen by hand.

        Args:
            partition: Result of ``match_all``.
            overrides: Original name -> roster student id.

        Returns:
            A new partition; resolved entries are appended to ``matched``
            with ``manual=True``.
        """
        by_id = {r.student.id: r.student for r in self._records}
        result = MatchPartition(matched=list(partition.matched))

        for entry in partition.unmatched:
            student_id = overrides.get(entry.original_name)
            if not student_id:
                result.unmatched.append(entry)
                continue

            student = by_id.get(student_id)
            if student is None:
                log.warning(
                    "Override for %r ignored: unknown student id %s",
                    entry.original_name, student_id,
                )
                result.unmatched.append(entry)
                continue

            confidence = next(
                (s.confidence for s in entry.suggestions if s.student.id == student_id),
                0,
            )
            result.matched.append(Matched(
                original_name=entry.original_name,
                parsed_name=entry.parsed_name,
                student=student,
                confidence=confidence,
                row=entry.row,
                manual=True,
                match_type='MANUAL',
            ))

        return result
