"""roster-match – CLI tool to reconcile school name lists with a platform roster."""

import argparse
import json
import logging
from pathlib import Path

from reconcile import MatchPartition
from reconcile.matching import AUTO_ACCEPT_CONFIDENCE, StudentMatcher
from reconcile.reader import (
    extract_balances,
    extract_from_name_column,
    extract_from_separate_columns,
    read_balance_source,
    read_roster,
    read_workbook,
    resolve_column,
)
from reconcile.reporter import print_summary, write_csv_report, write_html_report


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Reconcile student names against a platform roster export.',
        prog='roster_match.py',
    )
    parser.add_argument(
        '--roster', required=True, type=Path,
        help='Path to the platform roster CSV export',
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        '--school', type=Path,
        help='School file (XLSX or CSV); every sheet is matched',
    )
    source.add_argument(
        '--balance', type=Path,
        help='Point-balance CSV with "First Last" names',
    )
    parser.add_argument(
        '--name-column',
        help='Name column (header text, or 0-based index if no header matches)',
    )
    parser.add_argument(
        '--last-column',
        help='Last name column of the school file (with --first-column)',
    )
    parser.add_argument(
        '--first-column',
        help='First name column of the school file (with --last-column)',
    )
    parser.add_argument(
        '--points-column',
        help='Points column of the balance file',
    )
    parser.add_argument(
        '--output-dir', required=True, type=Path,
        help='Directory for the reports',
    )
    parser.add_argument(
        '--overrides', type=Path,
        help='JSON object mapping original names (or "SHEET:name") to student ids',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Also write an HTML report',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Print a summary to stdout',
    )
    parser.add_argument(
        '--auto-accept', type=int, default=AUTO_ACCEPT_CONFIDENCE,
        help=f'Minimum fuzzy confidence accepted as a match (default: {AUTO_ACCEPT_CONFIDENCE})',
    )
    return parser


def load_overrides(path: Path) -> dict[str, str]:
    """Load manual overrides from a JSON object of name -> student id."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Overrides file {path} must contain a JSON object")
    return {str(k): str(v) for k, v in data.items() if v}


def overrides_for_sheet(overrides: dict[str, str], sheet: str) -> dict[str, str]:
    """Plain name keys apply to every sheet; "SHEET:name" keys win for their sheet."""
    prefix = f'{sheet}:'
    scoped = {k[len(prefix):]: v for k, v in overrides.items() if k.startswith(prefix)}
    return {**overrides, **scoped}


def write_reports(
    matcher: StudentMatcher,
    partition: MatchPartition,
    output_dir: Path,
    name: str,
    html: bool,
    summary: bool,
) -> None:
    """Write the CSV (and optionally HTML) report for one result set."""
    output_path = output_dir / f"report_{name}.csv"
    write_csv_report(partition, output_path)

    if html:
        write_html_report(
            partition, output_path.with_suffix('.html'), name,
            matcher.list_for_manual_picker(),
        )

    if summary:
        print_summary(partition, name)


def process_school(args: argparse.Namespace, matcher: StudentMatcher, overrides: dict) -> None:
    """Match every sheet of the school file."""
    workbook = read_workbook(args.school)

    for sheet in workbook.sheet_names:
        rows = workbook.sheets[sheet]
        if not rows:
            logging.warning("Sheet %s is empty, skipped.", sheet)
            continue

        headers = list(rows[0])
        if args.name_column is not None:
            candidates = extract_from_name_column(
                rows, resolve_column(headers, args.name_column),
            )
        else:
            candidates = extract_from_separate_columns(
                rows,
                resolve_column(headers, args.last_column),
                resolve_column(headers, args.first_column),
            )

        logging.info("Matching sheet %s (%d names) ...", sheet, len(candidates))
        partition = matcher.match_all(candidates)
        partition = matcher.apply_overrides(partition, overrides_for_sheet(overrides, sheet))
        write_reports(matcher, partition, args.output_dir, sheet, args.html, args.summary)


def process_balance(args: argparse.Namespace, matcher: StudentMatcher, overrides: dict) -> None:
    """Match the names of a point-balance file."""
    headers, rows = read_balance_source(args.balance)
    name_column = resolve_column(headers, args.name_column)
    points_column = resolve_column(headers, args.points_column)
    if name_column == points_column:
        raise ValueError("Name and points columns must be different.")

    candidates = extract_balances(rows, name_column, points_column)
    partition = matcher.match_all(candidates)
    partition = matcher.apply_overrides(partition, overrides)
    write_reports(
        matcher, partition, args.output_dir, args.balance.stem, args.html, args.summary,
    )


def main(argv=None) -> None:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.school and args.name_column is None and not (args.last_column and args.first_column):
        parser.error('--school requires --name-column or both --last-column and --first-column.')

    if args.balance and (args.name_column is None or args.points_column is None):
        parser.error('--balance requires --name-column and --points-column.')

    if not 0 <= args.auto_accept <= 100:
        parser.error('--auto-accept must be between 0 and 100.')

    try:
        roster = read_roster(args.roster)
        overrides = load_overrides(args.overrides) if args.overrides else {}
        matcher = StudentMatcher(roster, auto_accept=args.auto_accept)
        args.output_dir.mkdir(parents=True, exist_ok=True)

        if args.school:
            process_school(args, matcher, overrides)
        else:
            process_balance(args, matcher, overrides)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))


if __name__ == '__main__':
    main()
