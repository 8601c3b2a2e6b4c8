"""Tests for reconcile.fuzzy module."""

from reconcile import CanonicalStudent, IndexedStudent
from reconcile.fuzzy import NameIndex


def _records(*names: tuple[str, str]) -> list[IndexedStudent]:
    """Build indexed records from (first, last) pairs, ids S1, S2, ..."""
    return [
        IndexedStudent.from_student(CanonicalStudent(f'S{i}', first, last))
        for i, (first, last) in enumerate(names, start=1)
    ]


class TestSearchKeys:
    """Tests for the synthesized keys of a record."""

    def test_all_variants(self):
        (record,) = _records(('John', 'Smith'))
        assert record.search_keys == (
            'JOHN SMITH', 'SMITH JOHN', 'SMITH, JOHN', 'JOHN', 'SMITH',
        )

    def test_inner_whitespace_collapsed(self):
        (record,) = _records(('Mary  Ann', ' De   Leon '))
        assert record.first_last == 'MARY ANN DE LEON'
        assert record.last_name == 'DE LEON'

    def test_empty_fields_dropped(self):
        (record,) = _records(('', 'Smith'))
        assert '' not in record.search_keys
        assert 'SMITH' in record.search_keys


class TestNameIndex:
    """Tests for ranked approximate search."""

    def test_identical_name_scores_zero(self):
        index = NameIndex(_records(('JOHN', 'SMITH')))
        hits = index.search('JOHN SMITH', 5)
        assert len(hits) == 1
        assert hits[0].score == 0.0
        assert hits[0].record.student.id == 'S1'

    def test_reversed_order_hits_last_first_key(self):
        index = NameIndex(_records(('JOHN', 'SMITH')))
        assert index.search('SMITH JOHN', 5)[0].score == 0.0
        assert index.search('SMITH, JOHN', 5)[0].score == 0.0

    def test_empty_query(self):
        index = NameIndex(_records(('JOHN', 'SMITH')))
        assert index.search('', 5) == []
        assert index.search('   ', 5) == []

    def test_empty_index(self):
        assert NameIndex([]).search('JOHN SMITH', 5) == []

    def test_zero_limit(self):
        index = NameIndex(_records(('JOHN', 'SMITH')))
        assert index.search('JOHN SMITH', 0) == []

    def test_limit_and_order(self):
        index = NameIndex(_records(
            ('JOHN', 'SMITH'), ('JON', 'SMITH'), ('JOHN', 'SMYTH'),
            ('JOAN', 'SMITH'), ('JOHNNY', 'SMITH'), ('JOHN', 'SMITHE'),
            ('JAHN', 'SMITT'),
        ))
        hits = index.search('JOHN SMITH', 5)
        assert len(hits) == 5
        scores = [h.score for h in hits]
        assert scores == sorted(scores)
        assert hits[0].record.student.id == 'S1'

    def test_one_hit_per_student(self):
        index = NameIndex(_records(('ANNA', 'ANNA')))
        hits = index.search('ANNA ANNA', 5)
        assert len(hits) == 1

    def test_ties_keep_roster_order(self):
        index = NameIndex(_records(('MARY', 'JONES'), ('MARY', 'JONES')))
        hits = index.search('MARY JONES', 5)
        assert [h.record.student.id for h in hits] == ['S1', 'S2']

    def test_unrelated_names_dropped(self):
        index = NameIndex(_records(('JOHN', 'SMITH')))
        assert index.search('XYZ', 5) == []

    def test_default_cutoff_drops_below_70_percent(self):
        index = NameIndex(_records(('JONATHAN', 'SMITHERS')))
        assert index.search('JON SMITH', 5) == []
        assert NameIndex(_records(('JONATHAN', 'SMITHERS')), max_score=0.5).search('JON SMITH', 5)

    def test_scores_are_bounded(self):
        index = NameIndex(_records(('JOHN', 'SMITH'), ('JANE', 'SMITS')), max_score=1.0)
        for hit in index.search('JOHN SMITH', 5):
            assert 0.0 <= hit.score <= 1.0

    def test_length(self):
        assert len(NameIndex(_records(('A', 'B'), ('C', 'D')))) == 2
