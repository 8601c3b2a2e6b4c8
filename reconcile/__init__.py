"""Core module for roster reconciliation."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class ParsedName:
    """A name normalized to upper case with trimmed, collapsed whitespace."""

    first_name: str
    last_name: str
    full_name: str

    @classmethod
    def empty(cls) -> 'ParsedName':
        return cls(first_name='', last_name='', full_name='')

    @property
    def is_empty(self) -> bool:
        return not self.first_name and not self.last_name


@dataclass(frozen=True)
class CanonicalStudent:
    """A student record from the platform roster export."""

    id: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class IndexedStudent:
    """A roster student together with the name keys it is searched under."""

    student: CanonicalStudent
    first_last: str        # "FIRST LAST"
    last_first: str        # "LAST FIRST"
    last_comma_first: str  # "LAST, FIRST"
    first_name: str
    last_name: str

    @classmethod
    def from_student(cls, student: CanonicalStudent) -> 'IndexedStudent':
        first = ' '.join(student.first_name.split()).upper()
        last = ' '.join(student.last_name.split()).upper()
        return cls(
            student=student,
            first_last=f'{first} {last}'.strip(),
            last_first=f'{last} {first}'.strip(),
            last_comma_first=f'{last}, {first}'.strip(),
            first_name=first,
            last_name=last,
        )

    @property
    def search_keys(self) -> tuple[str, ...]:
        keys = (
            self.first_last,
            self.last_first,
            self.last_comma_first,
            self.first_name,
            self.last_name,
        )
        return tuple(k for k in keys if k)


@dataclass(frozen=True)
class SourceRow:
    """A candidate name extracted from one row of a source file."""

    original_name: str
    parsed_name: ParsedName
    row_index: int
    points: Optional[int] = None


@dataclass(frozen=True)
class RankedSuggestion:
    """A roster student proposed for an unresolved candidate."""

    student: CanonicalStudent
    confidence: int  # 0 – 100


@dataclass
class Matched:
    """A candidate resolved to a roster student."""

    original_name: str
    parsed_name: ParsedName
    student: CanonicalStudent
    confidence: int  # 100 only for rule-based matches
    row: Optional[SourceRow] = None
    manual: bool = False
    match_type: str = 'EXACT'  # EXACT, FUZZY, MANUAL

    @property
    def status(self) -> str:
        return 'matched'


@dataclass
class Unmatched:
    """A candidate left for manual resolution."""

    original_name: str
    parsed_name: ParsedName
    suggestions: list[RankedSuggestion] = field(default_factory=list)
    row: Optional[SourceRow] = None

    @property
    def status(self) -> str:
        return 'unmatched'


MatchResult = Union[Matched, Unmatched]


@dataclass
class MatchPartition:
    """Results of a batch, split by outcome in input order."""

    matched: list[Matched] = field(default_factory=list)
    unmatched: list[Unmatched] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matched) + len(self.unmatched)

    @property
    def match_rate(self) -> int:
        """Percentage of matched candidates, rounded to a whole number."""
        if not self.total:
            return 0
        return int(len(self.matched) * 100 / self.total + 0.5)


@dataclass(frozen=True)
class PickerEntry:
    """One option of the manual-override student picker."""

    id: str
    display_name: str  # "LAST, FIRST"
    first_name: str
    last_name: str
