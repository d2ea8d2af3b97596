"""
Sequential per-folder migration.

Each folder moves through Pending -> InProgress -> Success | Failed and ends
with exactly one outcome. A failing folder is recorded and the batch carries on.
"""

import logging
from typing import Dict, List, Sequence

from tqdm import tqdm

from logger import RunLog
from models import FolderRecord, FolderState, MigrationOutcome
from orchestrator.folder_transfer import FolderTransfer

logger = logging.getLogger('public_folder_migrator.executor')

_ALLOWED_TRANSITIONS = {
    FolderState.PENDING: {FolderState.IN_PROGRESS},
    FolderState.IN_PROGRESS: {FolderState.SUCCESS, FolderState.FAILED},
    FolderState.SUCCESS: set(),
    FolderState.FAILED: set(),
}


class InvalidStateTransition(Exception):
    """A folder was moved out of a terminal state or skipped a step."""

    def __init__(self, identity: str, current: FolderState, requested: FolderState):
        self.identity = identity
        self.current = current
        self.requested = requested
        super().__init__(
            f"Folder '{identity}' cannot move from {current.value} to {requested.value}"
        )


class MigrationExecutor:
    """Runs the folder transfer for every inventory record, in order."""

    def __init__(self, transfer: FolderTransfer, run_log: RunLog, show_progress: bool = False):
        """
        Args:
            transfer: Strategy that moves one folder
            run_log: Run log shared by every stage
            show_progress: Display a tqdm progress bar on the console
        """
        self.transfer = transfer
        self.run_log = run_log
        self.show_progress = show_progress
        self.states: Dict[str, FolderState] = {}

    def run(self, inventory: Sequence[FolderRecord]) -> List[MigrationOutcome]:
        """
        Migrate every folder in inventory order.

        Returns:
            One outcome per record, in the same order, named after the record
        """
        self.states = {record.identity: FolderState.PENDING for record in inventory}
        outcomes: List[MigrationOutcome] = []

        self.run_log.info(f"Starting migration of {len(inventory)} folders")

        for record in tqdm(inventory, desc="Migrating folders", unit="folder",
                           disable=not self.show_progress):
            try:
                outcomes.append(self._migrate_one(record))
            except InvalidStateTransition as e:
                # Repeated identity: the earlier record already settled this state
                self.run_log.error(f"Failed to migrate '{record.name}': {str(e)}")
                outcomes.append(MigrationOutcome.failed(record.name, str(e)))

        succeeded = sum(1 for outcome in outcomes if outcome.is_success)
        failed = len(outcomes) - succeeded
        if failed:
            self.run_log.warning(f"Migration finished: {succeeded} succeeded, {failed} failed")
        else:
            self.run_log.success(f"Migration finished: all {succeeded} folders succeeded")

        return outcomes

    def _migrate_one(self, record: FolderRecord) -> MigrationOutcome:
        """Transfer one folder and settle it in a terminal state."""
        self._transition(record.identity, FolderState.IN_PROGRESS)
        self.run_log.info(f"Migrating folder '{record.path}'")

        try:
            result = self.transfer.transfer(record)
        except Exception as e:
            logger.debug(f"Transfer of '{record.identity}' raised", exc_info=True)
            result = None
            error_message = f"{type(e).__name__}: {str(e)}"
        else:
            error_message = result.error_message

        if result is not None and result.success:
            self._transition(record.identity, FolderState.SUCCESS)
            outcome = MigrationOutcome.succeeded(record.name, result.items_migrated)
            self.run_log.success(
                f"Migrated '{record.name}' ({result.items_migrated} items)"
            )
        else:
            self._transition(record.identity, FolderState.FAILED)
            outcome = MigrationOutcome.failed(record.name, error_message)
            self.run_log.error(f"Failed to migrate '{record.name}': {outcome.error_message}")

        return outcome

    def _transition(self, identity: str, new_state: FolderState) -> None:
        current = self.states.get(identity, FolderState.PENDING)
        if new_state not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidStateTransition(identity, current, new_state)
        self.states[identity] = new_state


__all__ = ['MigrationExecutor', 'InvalidStateTransition']
