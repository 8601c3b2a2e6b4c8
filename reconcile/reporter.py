"""Report generation for match results (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from reconcile import MatchPartition, MatchResult, Matched, PickerEntry

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

# Match-rate thresholds for the traffic-light indicator
GREEN_RATE = 95
YELLOW_RATE = 80

CSV_COLUMNS = [
    'Source_Row',
    'Original_Name',
    'Parsed_LastName',
    'Parsed_FirstName',
    'Status',
    'Match_Type',
    'Student_ID',
    'Student_LastName',
    'Student_FirstName',
    'Confidence',
    'Manual',
    'Points',
    'Suggestions',
]


def _format_suggestions(result: MatchResult) -> str:
    if isinstance(result, Matched):
        return ''
    return '; '.join(
        f'{s.student.last_name}, {s.student.first_name} ({s.confidence}%)'
        for s in result.suggestions
    )


def _result_to_row(result: MatchResult) -> dict:
    """Convert a MatchResult to a flat dict for CSV/HTML output."""
    student = result.student if isinstance(result, Matched) else None
    row = result.row
    return {
        'Source_Row': str(row.row_index) if row else '',
        'Original_Name': result.original_name,
        'Parsed_LastName': result.parsed_name.last_name,
        'Parsed_FirstName': result.parsed_name.first_name,
        'Status': result.status.upper(),
        'Match_Type': result.match_type if student else 'NONE',
        'Student_ID': student.id if student else '',
        'Student_LastName': student.last_name if student else '',
        'Student_FirstName': student.first_name if student else '',
        'Confidence': str(result.confidence) if student else '',
        'Manual': 'yes' if student and result.manual else '',
        'Points': str(row.points) if row and row.points is not None else '',
        'Suggestions': _format_suggestions(result),
        # Suggestion objects for the HTML override picker
        '_suggestions': [] if student else result.suggestions,
    }


def _iter_results(partition: MatchPartition) -> list[MatchResult]:
    return [*partition.matched, *partition.unmatched]


def write_csv_report(partition: MatchPartition, output_path: Path) -> None:
    """Write match results as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) so Excel detects the encoding.
    Matched entries come first, then unmatched ones, each in input order.

    Args:
        partition: Match results.
        output_path: Path for the output CSV file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    results = _iter_results(partition)
    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction='ignore')
        writer.writeheader()
        for result in results:
            writer.writerow(_result_to_row(result))

    log.info("CSV report written: %s (%d rows)", output_path, len(results))


def write_html_report(
    partition: MatchPartition,
    output_path: Path,
    title: str = '',
    picker: Optional[Sequence[PickerEntry]] = None,
) -> None:
    """Write match results as an HTML report using Jinja2.

    Every unmatched entry gets a select listing its suggestions followed
    by the full roster, for choosing a manual override.

    Args:
        partition: Match results.
        output_path: Path for the output HTML file.
        title: Report title (sheet or file name).
        picker: Roster entries from ``StudentMatcher.list_for_manual_picker``.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        title=title,
        matched_rows=[_result_to_row(r) for r in partition.matched],
        unmatched_rows=[_result_to_row(r) for r in partition.unmatched],
        stats=compute_stats(partition),
        columns=[c for c in CSV_COLUMNS if c != 'Suggestions'],
        picker=list(picker or []),
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML report written: %s", output_path)


def _indicator(rate: int) -> str:
    if rate >= GREEN_RATE:
        return 'green'
    if rate >= YELLOW_RATE:
        return 'yellow'
    return 'red'


def compute_stats(partition: MatchPartition) -> dict:
    """Compute summary statistics from match results."""
    matched = partition.matched
    rate = partition.match_rate
    has_points = any(
        r.row is not None and r.row.points is not None
        for r in _iter_results(partition)
    )

    return {
        'total': partition.total,
        'matched': len(matched),
        'exact': sum(1 for r in matched if r.match_type == 'EXACT'),
        'fuzzy': sum(1 for r in matched if r.match_type == 'FUZZY'),
        'manual': sum(1 for r in matched if r.match_type == 'MANUAL'),
        'unmatched': len(partition.unmatched),
        'match_rate': rate,
        'indicator': _indicator(rate),
        'has_points': has_points,
        'matched_points': sum(
            r.row.points for r in matched
            if r.row is not None and r.row.points is not None
        ),
    }


def print_summary(partition: MatchPartition, title: str = '') -> None:
    """Print a summary of match results to stdout.

    Args:
        partition: Match results.
        title: Sheet or file name.
    """
    stats = compute_stats(partition)

    print(f"\n=== Match report: {title} ===")
    print(f"Total names:               {stats['total']:>5}")
    print(f"Matched:                   {stats['matched']:>5}")
    print(f"  - exact:                 {stats['exact']:>5}")
    print(f"  - fuzzy:                 {stats['fuzzy']:>5}")
    print(f"  - manual:                {stats['manual']:>5}")
    print(f"Unmatched:                 {stats['unmatched']:>5}")
    print("---")
    print(f"Match rate:                {stats['match_rate']:>4}% ({stats['indicator']})")
    if stats['has_points']:
        print(f"Points to transfer:        {stats['matched_points']:>5}")
    print()
