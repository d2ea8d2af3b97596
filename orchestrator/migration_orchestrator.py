"""
Migration orchestrator coordinating the complete migration pipeline.

Sequences every stage: Inventory -> Summary -> Confirmation -> Connect ->
Migrate -> Report -> Save. The destination disconnect runs on every exit path.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config_loader import DEFAULT_REQUIRED_MODULES, get_nested
from destination_client import DestinationClient
from logger import RunLog, log_section
from models import FolderRecord, MigrationOutcome, RunMetadata
from orchestrator.confirmation_gate import ConfirmationGate
from orchestrator.folder_transfer import DestinationFolderTransfer, FolderTransfer
from orchestrator.inventory_collector import InventoryCollector
from orchestrator.migration_executor import MigrationExecutor
from orchestrator.migration_report import ReportGenerator, suggested_filename
from orchestrator.remote_connector import ConnectionFailure, PrerequisiteMissing, RemoteConnector
from orchestrator.report_persister import (
    PersistFallbackFailure,
    ReportPersister,
    SaveResult,
    SaveStatus,
    prompt_for_report_path,
)
from orchestrator.summary_presenter import format_console_summary, summarize
from source_client import SourceClient

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class RunResult(Enum):
    """How a run ended."""
    COMPLETED = "completed"
    DECLINED = "declined"
    DRY_RUN = "dry_run"
    EMPTY_INVENTORY = "empty_inventory"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        if self in (RunResult.EMPTY_INVENTORY, RunResult.FAILED):
            return EXIT_FAILURE
        return EXIT_SUCCESS


@dataclass
class RunSummary:
    """Everything a finished run produced."""

    result: RunResult
    inventory: List[FolderRecord]
    outcomes: List[MigrationOutcome]
    metadata: RunMetadata
    save_result: Optional[SaveResult] = None
    error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return self.result.exit_code


class MigrationOrchestrator:
    """Central coordinator for one supervised migration run."""

    def __init__(
        self,
        run_log: RunLog,
        metadata: RunMetadata,
        collector: InventoryCollector,
        gate: ConfirmationGate,
        connector: RemoteConnector,
        transfer: FolderTransfer,
        persister: ReportPersister,
        report_generator: Optional[ReportGenerator] = None,
        top_n: int = 10,
        path_separator: str = '\\',
        dry_run: bool = False,
        show_progress: bool = False,
        write_json: bool = False,
        output_func: Callable[[str], None] = print
    ):
        """
        Initialize the orchestrator with fully built stages.

        Args:
            run_log: Run log shared by every stage
            metadata: Run metadata opened at process start
            collector: Inventory collector for the source
            gate: Operator confirmation gate
            connector: Destination session manager
            transfer: Per-folder transfer strategy
            persister: Report persister
            report_generator: Report generator (a default one is created if omitted)
            top_n: Number of largest folders shown in the summary
            path_separator: Separator used to derive folder depth
            dry_run: Stop after the summary without migrating
            show_progress: Display a progress bar while migrating
            write_json: Save a JSON copy of the report next to the HTML one
            output_func: Console writer for the summary banners
        """
        self.run_log = run_log
        self.metadata = metadata
        self.collector = collector
        self.gate = gate
        self.connector = connector
        self.transfer = transfer
        self.persister = persister
        self.report_generator = report_generator or ReportGenerator()
        self.top_n = top_n
        self.path_separator = path_separator
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.write_json = write_json
        self.output_func = output_func

    def run(self) -> RunSummary:
        """
        Execute the pipeline once.

        Returns:
            Summary of the run; its exit_code is the process exit status
        """
        inventory: List[FolderRecord] = []
        outcomes: List[MigrationOutcome] = []

        log_section(f"Public folder migration {self.metadata.batch_label}", self.run_log)

        try:
            inventory = self.collector.collect()
            if not inventory:
                self.run_log.error("Nothing to migrate: the public folder inventory is empty")
                return self._summary(RunResult.EMPTY_INVENTORY, inventory, outcomes)

            summary = summarize(inventory, self.top_n, self.path_separator)
            self.output_func(format_console_summary(summary, inventory, self.path_separator))
            self.run_log.info(
                f"Inventory summary: {summary.total_folders} folders, {summary.total_items} items, "
                f"{summary.mail_enabled} mail-enabled"
            )

            if self.dry_run:
                self.run_log.info("Dry run: no folders were migrated")
                return self._summary(RunResult.DRY_RUN, inventory, outcomes)

            if not self.gate.confirm(
                f"Migrate {summary.total_folders} public folders in batch '{self.metadata.batch_label}'?"
            ):
                self.run_log.info("Migration declined by operator")
                return self._summary(RunResult.DECLINED, inventory, outcomes)

            self.connector.connect()

            executor = MigrationExecutor(self.transfer, self.run_log, show_progress=self.show_progress)
            outcomes = executor.run(inventory)

            self.metadata = self.metadata.finalize(self.run_log)
            return self._report(inventory, outcomes)

        except PrerequisiteMissing as e:
            self.run_log.error(f"Prerequisite check failed: {str(e)}")
            return self._summary(RunResult.FAILED, inventory, outcomes, error=str(e))
        except ConnectionFailure as e:
            self.run_log.error(f"Connection failed: {str(e)}")
            return self._summary(RunResult.FAILED, inventory, outcomes, error=str(e))
        except PersistFallbackFailure as e:
            self.run_log.error(f"Report could not be saved: {str(e)}")
            return self._summary(RunResult.FAILED, inventory, outcomes, error=str(e))
        except Exception as e:
            self.run_log.logger.debug("Unexpected failure", exc_info=True)
            self.run_log.error(f"Unexpected error during migration: {type(e).__name__}: {str(e)}")
            return self._summary(RunResult.FAILED, inventory, outcomes, error=str(e))
        finally:
            self.connector.disconnect()

    def _report(self, inventory: List[FolderRecord], outcomes: List[MigrationOutcome]) -> RunSummary:
        """Generate, display and persist the report."""
        self.run_log.info("Generating migration report")
        snapshot = self.run_log.snapshot()
        document = self.report_generator.generate(inventory, outcomes, snapshot, self.metadata)
        report_data = self.report_generator.build_report_data(inventory, outcomes, snapshot, self.metadata)
        self.output_func("\n" + self.report_generator.format_console_report(report_data))

        save_result = self.persister.save(document, suggested_filename(self.metadata))

        if self.write_json and save_result.status is SaveStatus.SAVED:
            json_path = os.path.splitext(save_result.path)[0] + '.json'
            try:
                self.report_generator.export_json_report(report_data, json_path)
                self.run_log.info(f"JSON report saved to {json_path}")
            except OSError as e:
                self.run_log.warning(f"Failed to export JSON report: {str(e)}")

        return self._summary(RunResult.COMPLETED, inventory, outcomes, save_result=save_result)

    def _summary(
        self,
        result: RunResult,
        inventory: List[FolderRecord],
        outcomes: List[MigrationOutcome],
        save_result: Optional[SaveResult] = None,
        error: Optional[str] = None
    ) -> RunSummary:
        return RunSummary(
            result=result,
            inventory=inventory,
            outcomes=outcomes,
            metadata=self.metadata,
            save_result=save_result,
            error=error
        )

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        run_log: Optional[RunLog] = None,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print
    ) -> 'MigrationOrchestrator':
        """
        Build the orchestrator and every stage from configuration.

        Args:
            config: Validated configuration dictionary
            run_log: Run log to use (a new one is created if omitted)
            input_func: Operator input channel
            output_func: Console writer

        Returns:
            Ready-to-run MigrationOrchestrator
        """
        run_log = run_log or RunLog()
        metadata = RunMetadata.open(get_nested(config, 'migration.batch_label'))

        gate = ConfirmationGate(input_func=input_func, output_func=output_func)

        collector = InventoryCollector(
            SourceClient.from_config(config),
            run_log,
            root_path=get_nested(config, 'source.root_path', '\\')
        )

        connector = RemoteConnector(
            lambda: DestinationClient.from_config(config),
            run_log,
            required_modules=get_nested(config, 'destination.required_modules', DEFAULT_REQUIRED_MODULES)
        )

        transfer = DestinationFolderTransfer(lambda: connector.client, metadata.batch_label)

        fixed_path = get_nested(config, 'report.path')
        if fixed_path:
            def chooser(suggested: str) -> Optional[str]:
                return fixed_path
        else:
            def chooser(suggested: str) -> Optional[str]:
                return prompt_for_report_path(suggested, input_func)

        persister = ReportPersister(
            run_log,
            chooser=chooser,
            output_directory=get_nested(config, 'report.output_directory', '.'),
            fallback_directory=get_nested(config, 'report.fallback_directory'),
            open_gate=gate if get_nested(config, 'report.offer_open', True) else None
        )

        return cls(
            run_log=run_log,
            metadata=metadata,
            collector=collector,
            gate=gate,
            connector=connector,
            transfer=transfer,
            persister=persister,
            top_n=get_nested(config, 'migration.top_n', 10),
            path_separator=get_nested(config, 'migration.path_separator', '\\'),
            dry_run=bool(get_nested(config, 'migration.dry_run', False)),
            show_progress=bool(get_nested(config, 'migration.show_progress', True)),
            write_json=bool(get_nested(config, 'report.write_json', False)),
            output_func=output_func
        )


__all__ = ['MigrationOrchestrator', 'RunResult', 'RunSummary', 'EXIT_SUCCESS', 'EXIT_FAILURE']
