"""Read-only aggregation and console formatting of a folder inventory."""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from models import FolderRecord, is_known


@dataclass(frozen=True)
class InventorySummary:
    """Aggregated view of an inventory, derived once before confirmation."""

    total_folders: int
    total_items: int
    total_size: int
    mail_enabled: int
    unknown_statistics: int
    top_folders: List[FolderRecord] = field(default_factory=list)
    hierarchy: Dict[int, List[FolderRecord]] = field(default_factory=dict)


def total_items(inventory: Sequence[FolderRecord]) -> int:
    """Sum of item counts over folders whose count is known."""
    return sum(record.item_count for record in inventory if is_known(record.item_count))


def total_size(inventory: Sequence[FolderRecord]) -> int:
    """Sum of folder sizes in bytes over folders whose size is known."""
    return sum(record.total_size for record in inventory if is_known(record.total_size))


def mail_enabled_count(inventory: Sequence[FolderRecord]) -> int:
    return sum(1 for record in inventory if record.mail_enabled)


def unknown_statistics_count(inventory: Sequence[FolderRecord]) -> int:
    return sum(1 for record in inventory if not is_known(record.item_count))


def top_folders(inventory: Sequence[FolderRecord], n: int = 10) -> List[FolderRecord]:
    """
    The n largest folders by item count.

    Folders with an unknown count are left out of the ranking. Ties keep
    their inventory order (sorted() is stable).
    """
    ranked = [record for record in inventory if is_known(record.item_count)]
    ranked = sorted(ranked, key=lambda record: record.item_count, reverse=True)
    return ranked[:max(n, 0)]


def hierarchy_view(
    inventory: Sequence[FolderRecord],
    separator: str = '\\'
) -> Dict[int, List[FolderRecord]]:
    """
    Group folders by depth (number of separators in their parent path).

    Returns:
        Mapping of depth to folders at that depth, shallowest first, with
        inventory order preserved inside each group
    """
    groups: Dict[int, List[FolderRecord]] = {}
    for record in inventory:
        groups.setdefault(record.depth(separator), []).append(record)
    return OrderedDict(sorted(groups.items()))


def summarize(
    inventory: Sequence[FolderRecord],
    top_n: int = 10,
    separator: str = '\\'
) -> InventorySummary:
    """Build the full summary of an inventory without touching it."""
    return InventorySummary(
        total_folders=len(inventory),
        total_items=total_items(inventory),
        total_size=total_size(inventory),
        mail_enabled=mail_enabled_count(inventory),
        unknown_statistics=unknown_statistics_count(inventory),
        top_folders=top_folders(inventory, top_n),
        hierarchy=hierarchy_view(inventory, separator)
    )


def format_size(size_bytes: int) -> str:
    """Format a byte count in human-readable units."""
    size = float(size_bytes)
    for unit in ('B', 'KB', 'MB', 'GB', 'TB'):
        if size < 1024 or unit == 'TB':
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size_bytes} B"


def format_console_summary(
    summary: InventorySummary,
    inventory: Sequence[FolderRecord],
    separator: str = '\\',
    max_tree_lines: int = 50
) -> str:
    """
    Format the pre-migration summary for console display.

    Args:
        summary: Aggregated inventory summary
        inventory: The inventory, walked in order for the folder tree
        separator: Parent path separator used for indentation
        max_tree_lines: Folder tree lines shown before truncating

    Returns:
        Formatted console string
    """
    sections = []

    sections.append("=" * 60)
    sections.append("PUBLIC FOLDER INVENTORY")
    sections.append("=" * 60)
    sections.append("")
    sections.append(f"  Folders:       {summary.total_folders}")
    sections.append(f"  Items:         {summary.total_items}")
    sections.append(f"  Total size:    {format_size(summary.total_size)}")
    sections.append(f"  Mail-enabled:  {summary.mail_enabled}")
    if summary.unknown_statistics:
        sections.append(f"  No statistics: {summary.unknown_statistics}")
    sections.append("")

    if summary.top_folders:
        sections.append(f"Largest folders (top {len(summary.top_folders)} by items):")
        sections.append("-" * 60)
        for index, record in enumerate(summary.top_folders, 1):
            sections.append(f"  {index:>2}. {record.path:<40} {record.item_count:>8}")
        sections.append("")

    sections.append("Folder hierarchy:")
    sections.append("-" * 60)
    depths = {record.identity: record.depth(separator) for record in inventory}
    min_depth = min(depths.values()) if depths else 0
    for record in list(inventory)[:max_tree_lines]:
        indent = "  " * (depths[record.identity] - min_depth)
        marker = " [mail]" if record.mail_enabled else ""
        count = record.item_count if is_known(record.item_count) else "?"
        sections.append(f"  {indent}{record.name} ({count}){marker}")
    if len(inventory) > max_tree_lines:
        sections.append(f"  ... {len(inventory) - max_tree_lines} more folders")

    sections.append("")
    sections.append("=" * 60)

    return "\n".join(sections)


__all__ = [
    'InventorySummary',
    'summarize',
    'total_items',
    'total_size',
    'mail_enabled_count',
    'unknown_statistics_count',
    'top_folders',
    'hierarchy_view',
    'format_size',
    'format_console_summary'
]
