"""
Migration report generator.

Turns the inventory, the per-folder outcomes and the run log into a single
self-contained HTML document, plus JSON and console renderings of the same
data. Generation is a pure transform: identical inputs give identical
documents apart from the "generated at" stamp.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from models import FolderRecord, LogEntry, MigrationOutcome, RunMetadata, is_known
from orchestrator.summary_presenter import format_size

logger = logging.getLogger('public_folder_migrator.report')

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

REPORT_CSS = """
body { font-family: "Segoe UI", Arial, sans-serif; margin: 24px; color: #222; }
h1 { color: #0b4f8a; margin-bottom: 4px; }
h2 { color: #0b4f8a; border-bottom: 2px solid #0b4f8a; padding-bottom: 4px; margin-top: 32px; }
.meta { color: #666; font-size: 0.9em; }
.summary { display: flex; flex-wrap: wrap; gap: 12px; }
.card { border: 1px solid #ccd; border-radius: 6px; padding: 12px 18px; min-width: 140px; }
.card .value { font-size: 1.6em; font-weight: bold; }
.card .label { color: #666; font-size: 0.85em; }
table { border-collapse: collapse; width: 100%; margin-top: 8px; font-size: 0.9em; }
th, td { border: 1px solid #ddd; padding: 6px 8px; text-align: left; vertical-align: top; }
th { background: #0b4f8a; color: #fff; }
tr:nth-child(even) td { background: #f6f8fa; }
.status-success { color: #1a7f37; font-weight: bold; }
.status-failed { color: #cf222e; font-weight: bold; }
.unknown { color: #999; font-style: italic; }
.log { font-family: Consolas, "Courier New", monospace; font-size: 0.85em; background: #1e1e1e;
       color: #ddd; padding: 12px; border-radius: 6px; }
.log-entry { white-space: pre-wrap; }
.level-INFO { color: #ddd; }
.level-SUCCESS { color: #3fb950; }
.level-WARNING { color: #d29922; }
.level-ERROR { color: #f85149; }
"""


class ReportGenerator:
    """Builds the migration report document and its companion renderings."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('public_folder_migrator.report')

    def generate(
        self,
        inventory: Sequence[FolderRecord],
        outcomes: Sequence[MigrationOutcome],
        log_snapshot: Sequence[LogEntry],
        run_metadata: RunMetadata,
        generated_at: Optional[datetime] = None
    ) -> str:
        """
        Render the complete HTML report.

        Args:
            inventory: Folder records, in inventory order
            outcomes: Migration outcomes, in outcome order
            log_snapshot: Run log entries, in chronological order
            run_metadata: Finalized run metadata
            generated_at: Generation stamp embedded in the document (defaults to now)

        Returns:
            HTML document as a string
        """
        generated_at = generated_at or datetime.now()
        summary = build_summary(outcomes, run_metadata)

        soup = BeautifulSoup(
            '<!DOCTYPE html><html lang="en"><head></head><body></body></html>',
            'html.parser'
        )
        head = soup.head
        _append(soup, head, 'meta', attrs={'charset': 'utf-8'})
        _append(soup, head, 'title', f"Public Folder Migration Report - {run_metadata.batch_label}")
        style = _append(soup, head, 'style')
        style.string = REPORT_CSS

        body = soup.body
        _append(soup, body, 'h1', "Public Folder Migration Report")
        _append(
            soup, body, 'p',
            f"Batch {run_metadata.batch_label} - generated {generated_at.strftime(TIMESTAMP_FORMAT)}",
            attrs={'class': 'meta', 'id': 'generated-at'}
        )

        self._render_summary(soup, body, summary)
        self._render_results(soup, body, outcomes)
        self._render_inventory(soup, body, inventory)
        self._render_log(soup, body, log_snapshot)

        self.logger.debug(
            f"Report rendered: {len(outcomes)} outcomes, {len(inventory)} folders, "
            f"{len(log_snapshot)} log entries"
        )
        return str(soup)

    def _render_summary(self, soup: BeautifulSoup, body: Tag, summary: Dict[str, Any]) -> None:
        section = _append(soup, body, 'section', attrs={'id': 'summary'})
        _append(soup, section, 'h2', "Summary")

        cards = _append(soup, section, 'div', attrs={'class': 'summary'})
        for label, value in (
            ("Total folders", summary['total_folders']),
            ("Successful", summary['successful']),
            ("Failed", summary['failed']),
            ("Items migrated", summary['items_migrated']),
            ("Duration", summary['duration_formatted']),
            ("Warnings", summary['warning_count']),
            ("Errors", summary['error_count']),
        ):
            card = _append(soup, cards, 'div', attrs={'class': 'card'})
            _append(soup, card, 'div', str(value), attrs={'class': 'value'})
            _append(soup, card, 'div', label, attrs={'class': 'label'})

        _append(
            soup, section, 'p',
            f"Started {summary['start_time']} - finished {summary['end_time'] or 'n/a'}",
            attrs={'class': 'meta'}
        )

    def _render_results(
        self,
        soup: BeautifulSoup,
        body: Tag,
        outcomes: Sequence[MigrationOutcome]
    ) -> None:
        section = _append(soup, body, 'section', attrs={'id': 'migration-results'})
        _append(soup, section, 'h2', f"Migration Results ({len(outcomes)})")

        tbody = _table(soup, section, ["#", "Folder", "Status", "Items Migrated", "Error", "Completed"])
        for index, outcome in enumerate(outcomes, 1):
            row = _append(soup, tbody, 'tr')
            _append(soup, row, 'td', str(index))
            _append(soup, row, 'td', outcome.folder_name)
            _append(soup, row, 'td', outcome.status.value,
                    attrs={'class': f"status-{outcome.status.value.lower()}"})
            _append(soup, row, 'td', str(outcome.items_migrated))
            _append(soup, row, 'td', outcome.error_message)
            _append(soup, row, 'td', outcome.timestamp.strftime(TIMESTAMP_FORMAT))

    def _render_inventory(
        self,
        soup: BeautifulSoup,
        body: Tag,
        inventory: Sequence[FolderRecord]
    ) -> None:
        section = _append(soup, body, 'section', attrs={'id': 'folder-inventory'})
        _append(soup, section, 'h2', f"Folder Inventory ({len(inventory)})")

        tbody = _table(soup, section, [
            "Name", "Parent Path", "Items", "Size", "Last Modified", "Subfolders", "Mail-Enabled"
        ])
        for record in inventory:
            row = _append(soup, tbody, 'tr')
            _append(soup, row, 'td', record.name)
            _append(soup, row, 'td', record.parent_path)
            _unknown_cell(soup, row, record.item_count, str)
            _unknown_cell(soup, row, record.total_size, format_size)
            _unknown_cell(soup, row, record.last_modified, lambda value: value.strftime(TIMESTAMP_FORMAT))
            _append(soup, row, 'td', "Yes" if record.has_subfolders else "No")
            _append(soup, row, 'td', "Yes" if record.mail_enabled else "No")

    def _render_log(self, soup: BeautifulSoup, body: Tag, log_snapshot: Sequence[LogEntry]) -> None:
        section = _append(soup, body, 'section', attrs={'id': 'operation-log'})
        _append(soup, section, 'h2', f"Operation Log ({len(log_snapshot)})")

        block = _append(soup, section, 'div', attrs={'class': 'log'})
        for entry in log_snapshot:
            _append(
                soup, block, 'div',
                f"[{entry.timestamp.strftime(TIMESTAMP_FORMAT)}] [{entry.level.value}] {entry.message}",
                attrs={'class': f"log-entry level-{entry.level.value}"}
            )

    def build_report_data(
        self,
        inventory: Sequence[FolderRecord],
        outcomes: Sequence[MigrationOutcome],
        log_snapshot: Sequence[LogEntry],
        run_metadata: RunMetadata,
        generated_at: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Same content as the HTML report, as a JSON-serializable dictionary."""
        return {
            'summary': build_summary(outcomes, run_metadata),
            'run': run_metadata.to_dict(),
            'results': [outcome.to_dict() for outcome in outcomes],
            'inventory': [record.to_dict() for record in inventory],
            'log': [entry.to_dict() for entry in log_snapshot],
            'timestamp': (generated_at or datetime.now()).isoformat()
        }

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format the final report summary for console display.

        Args:
            report: Dictionary produced by build_report_data()

        Returns:
            Formatted console string
        """
        summary = report.get('summary', {})
        sections = []

        sections.append("=" * 60)
        sections.append("MIGRATION REPORT")
        sections.append("=" * 60)
        sections.append("")
        sections.append(f"  Batch:       {summary.get('batch_label', 'unknown')}")
        sections.append(f"  Folders:     {summary.get('total_folders', 0)}")
        sections.append(f"  Successful:  {summary.get('successful', 0)}")
        sections.append(f"  Failed:      {summary.get('failed', 0)}")
        sections.append(f"  Items:       {summary.get('items_migrated', 0)}")
        sections.append(f"  Duration:    {summary.get('duration_formatted', '0s')}")
        if summary.get('warning_count', 0) > 0:
            sections.append(f"  Warnings:    {summary['warning_count']}")
        if summary.get('error_count', 0) > 0:
            sections.append(f"  Errors:      {summary['error_count']}")

        failed = [result for result in report.get('results', []) if result.get('status') == 'Failed']
        if failed:
            sections.append("")
            sections.append("Failed folders:")
            sections.append("-" * 60)
            for result in failed[:10]:
                sections.append(f"  {result['folder_name']}: {result['error_message']}")
            if len(failed) > 10:
                sections.append(f"  ... {len(failed) - 10} more (see report)")

        sections.append("")
        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report data to a JSON file.

        Raises:
            OSError: If the file cannot be written
        """
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)

        self.logger.debug(f"JSON report exported to {filepath}")


def build_summary(outcomes: Sequence[MigrationOutcome], run_metadata: RunMetadata) -> Dict[str, Any]:
    """Headline numbers shared by every rendering of the report."""
    successful = sum(1 for outcome in outcomes if outcome.is_success)
    duration = run_metadata.duration_seconds
    return {
        'batch_label': run_metadata.batch_label,
        'total_folders': len(outcomes),
        'successful': successful,
        'failed': len(outcomes) - successful,
        'items_migrated': sum(outcome.items_migrated for outcome in outcomes),
        'duration_seconds': duration,
        'duration_formatted': format_duration(duration),
        'start_time': run_metadata.start_time.strftime(TIMESTAMP_FORMAT),
        'end_time': run_metadata.end_time.strftime(TIMESTAMP_FORMAT) if run_metadata.end_time else None,
        'warning_count': run_metadata.warning_count,
        'error_count': run_metadata.error_count
    }


def suggested_filename(run_metadata: RunMetadata, extension: str = 'html') -> str:
    """Default report file name for a batch."""
    safe_label = "".join(ch if ch.isalnum() or ch in '-_' else '_' for ch in run_metadata.batch_label)
    return f"PublicFolderMigration_{safe_label}.{extension}"


def format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{hours}h {minutes}m {secs}s"


def _append(
    soup: BeautifulSoup,
    parent: Tag,
    name: str,
    text: Optional[str] = None,
    attrs: Optional[Dict[str, str]] = None
) -> Tag:
    tag = soup.new_tag(name, attrs=attrs or {})
    if text is not None:
        tag.string = text
    parent.append(tag)
    return tag


def _table(soup: BeautifulSoup, parent: Tag, headers: List[str]) -> Tag:
    """Append a table with a header row and return its body."""
    table = _append(soup, parent, 'table')
    header_row = _append(soup, _append(soup, table, 'thead'), 'tr')
    for header in headers:
        _append(soup, header_row, 'th', header)
    return _append(soup, table, 'tbody')


def _unknown_cell(soup: BeautifulSoup, row: Tag, value: Any, render) -> None:
    if is_known(value):
        _append(soup, row, 'td', render(value))
    else:
        _append(soup, row, 'td', "Unknown", attrs={'class': 'unknown'})


__all__ = ['ReportGenerator', 'build_summary', 'suggested_filename', 'format_duration']
