"""Strategies that move a single folder to the destination."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Union

from destination_client import DestinationClient, ItemTransferFailure
from models import FolderRecord, TransferResult, is_known

logger = logging.getLogger('public_folder_migrator.transfer')


class FolderTransfer(ABC):
    """Moves one folder and reports what happened."""

    @abstractmethod
    def transfer(self, folder: FolderRecord) -> TransferResult:
        """
        Transfer a folder to the destination.

        Args:
            folder: Folder to migrate

        Returns:
            Result with the migrated item count or an error message

        Raises:
            ItemTransferFailure: If the transfer request itself fails
        """
        pass


class DestinationFolderTransfer(FolderTransfer):
    """Transfers folders through the destination service's migration endpoint."""

    def __init__(self, client_provider: Callable[[], DestinationClient], batch_label: str):
        """
        Args:
            client_provider: Returns the connected destination client
            batch_label: Migration batch the requests are grouped under
        """
        self.client_provider = client_provider
        self.batch_label = batch_label

    def transfer(self, folder: FolderRecord) -> TransferResult:
        response = self.client_provider().migrate_folder(
            identity=folder.identity,
            name=folder.name,
            parent_path=folder.parent_path,
            mail_enabled=folder.mail_enabled,
            batch_label=self.batch_label
        )
        return self._parse_response(folder, response)

    @staticmethod
    def _parse_response(folder: FolderRecord, response: Dict[str, Any]) -> TransferResult:
        """Translate the service response into a transfer result."""
        status = str(response.get('status', '')).strip().lower()
        if status in ('completed', 'succeeded', 'success'):
            items = response.get('itemsMigrated', response.get('items_migrated', 0))
            try:
                items = int(items)
            except (TypeError, ValueError):
                logger.debug(f"Non-numeric item count {items!r} for '{folder.name}'")
                items = 0
            return TransferResult(success=True, items_migrated=max(items, 0))

        error = response.get('error') or response.get('message')
        if isinstance(error, dict):
            error = error.get('message') or str(error)
        if not error:
            error = f"Destination reported status '{status or 'unknown'}'"
        return TransferResult(success=False, error_message=str(error))


class ScriptedFolderTransfer(FolderTransfer):
    """
    Deterministic transfer driven by a fixed script of results.

    Results are looked up by folder identity, then by name. Unscripted
    folders succeed with their known item count (0 when unknown). A script
    value may be a TransferResult or an exception instance to raise.
    """

    def __init__(self, script: Optional[Mapping[str, Union[TransferResult, Exception]]] = None):
        self.script = dict(script or {})
        self.calls = []

    def transfer(self, folder: FolderRecord) -> TransferResult:
        self.calls.append(folder.identity)

        scripted = self.script.get(folder.identity, self.script.get(folder.name))
        if isinstance(scripted, Exception):
            raise scripted
        if scripted is not None:
            return scripted

        items = folder.item_count if is_known(folder.item_count) else 0
        return TransferResult(success=True, items_migrated=items)


__all__ = [
    'FolderTransfer',
    'DestinationFolderTransfer',
    'ScriptedFolderTransfer',
    'ItemTransferFailure'
]
