"""Data models for the public folder migration pipeline."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

if TYPE_CHECKING:
    from logger import RunLog


class Unknown(Enum):
    """Marker for a statistic that could not be retrieved from the source."""
    UNKNOWN = "unknown"

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __str__(self) -> str:
        return "Unknown"


UNKNOWN = Unknown.UNKNOWN


def is_known(value: Any) -> bool:
    """Return True when value is a real statistic rather than UNKNOWN."""
    return value is not UNKNOWN


class LogLevel(Enum):
    """Severity of a run log entry."""
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SUCCESS = "SUCCESS"


class FolderState(Enum):
    """Per-folder migration state."""
    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    SUCCESS = "Success"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FolderState.SUCCESS, FolderState.FAILED)


class OutcomeStatus(Enum):
    """Terminal result of a folder transfer."""
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True)
class LogEntry:
    """A single line of the run log."""

    timestamp: datetime
    level: LogLevel
    message: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entry to dictionary."""
        return {
            'timestamp': self.timestamp.isoformat(),
            'level': self.level.value,
            'message': self.message
        }


@dataclass(frozen=True)
class FolderRecord:
    """A public folder discovered on the source, with its usage statistics."""

    name: str
    identity: str
    parent_path: str
    item_count: Union[int, Unknown] = UNKNOWN
    total_size: Union[int, Unknown] = UNKNOWN
    last_modified: Union[datetime, Unknown] = UNKNOWN
    has_subfolders: bool = False
    mail_enabled: bool = False

    def __post_init__(self) -> None:
        """Reject item counts that are neither a non-negative int nor UNKNOWN."""
        count = self.item_count
        if count is UNKNOWN:
            return
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ValueError(
                f"item_count for folder '{self.name}' must be a non-negative integer or UNKNOWN, "
                f"got {count!r}"
            )

    @property
    def path(self) -> str:
        """Full folder path built from the parent path and the folder name."""
        parent = self.parent_path.rstrip('\\/')
        return f"{parent}\\{self.name}"

    def depth(self, separator: str = '\\') -> int:
        """Nesting depth: separators in the parent path, so top-level folders are 0."""
        return self.parent_path.rstrip(separator).count(separator)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize folder record to dictionary, keeping UNKNOWN explicit."""
        return {
            'name': self.name,
            'identity': self.identity,
            'parent_path': self.parent_path,
            'item_count': self.item_count if is_known(self.item_count) else None,
            'total_size': self.total_size if is_known(self.total_size) else None,
            'last_modified': (
                self.last_modified.isoformat() if is_known(self.last_modified) else None
            ),
            'statistics_known': is_known(self.item_count),
            'has_subfolders': self.has_subfolders,
            'mail_enabled': self.mail_enabled
        }


@dataclass(frozen=True)
class TransferResult:
    """Raw result returned by a folder transfer strategy."""

    success: bool
    items_migrated: int = 0
    error_message: str = ""


@dataclass(frozen=True)
class MigrationOutcome:
    """Terminal outcome of migrating one folder."""

    folder_name: str
    status: OutcomeStatus
    items_migrated: int = 0
    error_message: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        """Enforce the shape of Success and Failed outcomes."""
        if self.status is OutcomeStatus.FAILED and self.items_migrated != 0:
            raise ValueError("Failed outcomes cannot report migrated items")
        if self.status is OutcomeStatus.SUCCESS and self.error_message:
            raise ValueError("Successful outcomes cannot carry an error message")

    @classmethod
    def succeeded(cls, folder_name: str, items_migrated: int) -> 'MigrationOutcome':
        return cls(folder_name=folder_name, status=OutcomeStatus.SUCCESS,
                   items_migrated=items_migrated)

    @classmethod
    def failed(cls, folder_name: str, error_message: str) -> 'MigrationOutcome':
        return cls(folder_name=folder_name, status=OutcomeStatus.FAILED,
                   error_message=error_message or "Unknown error")

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Serialize outcome to dictionary."""
        return {
            'folder_name': self.folder_name,
            'status': self.status.value,
            'items_migrated': self.items_migrated,
            'error_message': self.error_message,
            'timestamp': self.timestamp.isoformat()
        }


@dataclass(frozen=True)
class RunMetadata:
    """Run-wide bookkeeping, opened at start and finalized at report time."""

    start_time: datetime
    batch_label: str
    end_time: Optional[datetime] = None
    error_count: int = 0
    warning_count: int = 0

    @classmethod
    def open(cls, batch_label: Optional[str] = None,
             start_time: Optional[datetime] = None) -> 'RunMetadata':
        """Open the metadata for a new run."""
        start = start_time or datetime.now()
        label = batch_label or default_batch_label(start)
        return cls(start_time=start, batch_label=label)

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    def finalize(self, run_log: 'RunLog', end_time: Optional[datetime] = None) -> 'RunMetadata':
        """Return a closed copy carrying the final counters from the run log."""
        if self.is_finalized:
            raise ValueError(f"Run metadata for batch '{self.batch_label}' is already finalized")
        return replace(
            self,
            end_time=end_time or datetime.now(),
            error_count=run_log.error_count,
            warning_count=run_log.warning_count
        )

    @property
    def duration_seconds(self) -> float:
        """Elapsed seconds between start and end (or now, while still open)."""
        end = self.end_time or datetime.now()
        return max((end - self.start_time).total_seconds(), 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize metadata to dictionary."""
        return {
            'batch_label': self.batch_label,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.duration_seconds,
            'error_count': self.error_count,
            'warning_count': self.warning_count
        }


def default_batch_label(start_time: datetime) -> str:
    """Batch label used when none is configured."""
    return f"PFMigration_{start_time.strftime('%Y%m%d_%H%M%S')}"


__all__ = [
    'UNKNOWN',
    'Unknown',
    'is_known',
    'LogLevel',
    'LogEntry',
    'FolderState',
    'FolderRecord',
    'OutcomeStatus',
    'TransferResult',
    'MigrationOutcome',
    'RunMetadata',
    'default_batch_label'
]
