"""
Inventory collection for the migration source.

Enumerates every public folder below the configured root and attaches its
usage statistics. Statistics failures are isolated to the folder they hit.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union

from dateutil.parser import isoparse

from logger import RunLog
from models import UNKNOWN, FolderRecord, Unknown, is_known
from source_client import SourceApiError, SourceClient

_BYTES_IN_PARENS = re.compile(r'\(([\d,.\s]+)\s*bytes\)', re.IGNORECASE)
_PLAIN_NUMBER = re.compile(r'^\s*([\d,]+)\s*(?:bytes|b)?\s*$', re.IGNORECASE)


class InventoryCollector:
    """Builds the ordered point-in-time inventory of source folders."""

    def __init__(self, client: SourceClient, run_log: RunLog, root_path: str = '\\'):
        """
        Args:
            client: Source service client
            run_log: Run log shared by every stage
            root_path: Folder path the enumeration starts from (excluded from the inventory)
        """
        self.client = client
        self.run_log = run_log
        self.root_path = root_path

    def collect(self) -> List[FolderRecord]:
        """
        Enumerate all folders and their statistics.

        Returns:
            Ordered list of folder records; empty when there is nothing to
            migrate or when the folder hierarchy could not be enumerated
        """
        self.run_log.info(f"Collecting public folder inventory below '{self.root_path}'")

        try:
            raw_folders = self.client.list_folders(self.root_path)
        except SourceApiError as e:
            self.run_log.error(f"Unable to enumerate public folders: {str(e)}")
            return []

        if not raw_folders:
            self.run_log.warning("No public folders found on the source")
            return []

        inventory: List[FolderRecord] = []
        seen: Set[str] = set()
        stats_failures = 0

        for raw in raw_folders:
            name = str(raw.get('Name') or raw.get('name') or '')
            identity = str(raw.get('Identity') or raw.get('identity') or raw.get('EntryId') or '')
            parent_path = raw.get('ParentPath', raw.get('parentPath'))

            if not identity:
                self.run_log.warning(f"Skipping folder '{name or '?'}' without an identity")
                continue

            # The hierarchy root is the container, not something to migrate
            if not parent_path or identity == self.root_path:
                continue

            if identity in seen:
                self.run_log.warning(f"Skipping duplicate folder identity '{identity}'")
                continue
            seen.add(identity)

            try:
                stats = self.client.get_folder_statistics(identity)
            except SourceApiError as e:
                stats_failures += 1
                self.run_log.warning(f"Could not read statistics for '{identity}': {str(e)}")
                stats = None

            record = self._build_record(raw, name, identity, str(parent_path), stats)
            if stats is not None and not is_known(record.item_count):
                stats_failures += 1
                self.run_log.warning(f"Statistics for '{identity}' carried no usable item count")
            inventory.append(record)

        self.run_log.info(
            f"Inventory complete: {len(inventory)} folders"
            + (f", {stats_failures} without statistics" if stats_failures else "")
        )
        return inventory

    def _build_record(
        self,
        raw: Dict[str, Any],
        name: str,
        identity: str,
        parent_path: str,
        stats: Optional[Dict[str, Any]]
    ) -> FolderRecord:
        """Combine a raw folder entry with its (possibly missing) statistics."""
        if stats is None:
            item_count: Union[int, Unknown] = UNKNOWN
            total_size: Union[int, Unknown] = UNKNOWN
            last_modified: Union[datetime, Unknown] = UNKNOWN
        else:
            item_count = parse_count(stats.get('ItemCount', stats.get('itemCount')))
            total_size = parse_size(stats.get('TotalItemSize', stats.get('totalItemSize')))
            last_modified = parse_timestamp(
                stats.get('LastModificationTime', stats.get('lastModificationTime'))
            )

        return FolderRecord(
            name=name,
            identity=identity,
            parent_path=parent_path,
            item_count=item_count,
            total_size=total_size,
            last_modified=last_modified,
            has_subfolders=_as_bool(raw.get('HasSubfolders', raw.get('hasSubfolders'))),
            mail_enabled=_as_bool(raw.get('MailEnabled', raw.get('mailEnabled')))
        )


def parse_count(value: Any) -> Union[int, Unknown]:
    """Parse an item count; anything that is not a non-negative integer is UNKNOWN."""
    if isinstance(value, bool) or value is None:
        return UNKNOWN
    if isinstance(value, int):
        return value if value >= 0 else UNKNOWN
    if isinstance(value, str):
        match = _PLAIN_NUMBER.match(value)
        if match:
            return int(match.group(1).replace(',', ''))
    return UNKNOWN


def parse_size(value: Any) -> Union[int, Unknown]:
    """
    Parse a folder size into bytes.

    Accepts plain integers and display strings such as "1.2 MB (1,258,291 bytes)".
    """
    if isinstance(value, bool) or value is None:
        return UNKNOWN
    if isinstance(value, int):
        return value if value >= 0 else UNKNOWN
    if isinstance(value, float):
        return int(value) if value >= 0 else UNKNOWN
    if isinstance(value, str):
        match = _BYTES_IN_PARENS.search(value) or _PLAIN_NUMBER.match(value)
        if match:
            digits = re.sub(r'[^\d]', '', match.group(1))
            if digits:
                return int(digits)
    return UNKNOWN


def parse_timestamp(value: Any) -> Union[datetime, Unknown]:
    """Parse an ISO 8601 timestamp; unparseable values are UNKNOWN."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return UNKNOWN
    try:
        return isoparse(value.strip())
    except ValueError:
        return UNKNOWN


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes')
    return bool(value)


__all__ = ['InventoryCollector', 'parse_count', 'parse_size', 'parse_timestamp']
