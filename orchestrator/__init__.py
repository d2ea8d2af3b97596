"""
Orchestration package for the public folder migration pipeline.

This package provides every stage of a supervised migration run:
Inventory → Summary → Confirmation → Connect → Migrate → Report → Save,
and the orchestrator that sequences them.
"""

from .confirmation_gate import ConfirmationGate
from .folder_transfer import DestinationFolderTransfer, FolderTransfer, ScriptedFolderTransfer
from .inventory_collector import InventoryCollector
from .migration_executor import InvalidStateTransition, MigrationExecutor
from .migration_orchestrator import MigrationOrchestrator, RunResult, RunSummary
from .migration_report import ReportGenerator
from .remote_connector import ConnectionFailure, ConnectionUnusable, PrerequisiteMissing, RemoteConnector
from .report_persister import PersistFailure, PersistFallbackFailure, ReportPersister, SaveResult, SaveStatus
from .summary_presenter import InventorySummary, summarize

__all__ = [
    'ConfirmationGate',
    'FolderTransfer',
    'DestinationFolderTransfer',
    'ScriptedFolderTransfer',
    'InventoryCollector',
    'MigrationExecutor',
    'InvalidStateTransition',
    'MigrationOrchestrator',
    'RunResult',
    'RunSummary',
    'ReportGenerator',
    'RemoteConnector',
    'PrerequisiteMissing',
    'ConnectionFailure',
    'ConnectionUnusable',
    'ReportPersister',
    'SaveResult',
    'SaveStatus',
    'PersistFailure',
    'PersistFallbackFailure',
    'InventorySummary',
    'summarize'
]
