"""End-to-end tests for the migration pipeline with in-memory collaborators."""

import os
import tempfile
import unittest
from datetime import datetime
from unittest.mock import MagicMock, patch

from bs4 import BeautifulSoup

from destination_client import DestinationApiError, ItemTransferFailure
from logger import RunLog
from models import LogLevel, OutcomeStatus, RunMetadata
from orchestrator.confirmation_gate import ConfirmationGate
from orchestrator.folder_transfer import ScriptedFolderTransfer
from orchestrator.inventory_collector import InventoryCollector
from orchestrator.migration_orchestrator import MigrationOrchestrator, RunResult
from orchestrator.remote_connector import RemoteConnector
from orchestrator.report_persister import ReportPersister, SaveStatus
from source_client import StatisticsFetchFailure


class FakeSourceClient:
    def __init__(self, folders, statistics=None, failing=()):
        self.folders = folders
        self.statistics = statistics or {}
        self.failing = set(failing)

    def list_folders(self, root_path='\\'):
        return self.folders

    def get_folder_statistics(self, identity):
        if identity in self.failing:
            raise StatisticsFetchFailure(identity, "timed out")
        return self.statistics.get(identity, {})


class CountingConnector(RemoteConnector):
    """RemoteConnector that counts disconnect calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.connect_calls = 0
        self.disconnect_calls = 0

    def connect(self):
        self.connect_calls += 1
        return super().connect()

    def disconnect(self):
        self.disconnect_calls += 1
        super().disconnect()


def destination_client(organization=None, open_error=None):
    client = MagicMock()
    client.is_open = True
    client.get_organization.return_value = organization or {'displayName': 'Contoso'}
    if open_error:
        client.open_session.side_effect = open_error
    return client


FOLDERS = [
    {'Name': 'A', 'Identity': '\\A', 'ParentPath': '\\'},
    {'Name': 'B', 'Identity': '\\B', 'ParentPath': '\\'},
    {'Name': 'C', 'Identity': '\\C', 'ParentPath': '\\'},
]
STATISTICS = {'\\A': {'ItemCount': 10}, '\\C': {'ItemCount': 5}}


class TestMigrationOrchestrator(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.report_path = os.path.join(self.tmp.name, 'report.html')
        self.run_log = RunLog()
        self.output = []

    def build(self, folders=FOLDERS, answers=('Y',), client=None, transfer=None,
              failing=('\\B',), modules=None, chooser=None, dry_run=False):
        answers = list(answers)
        gate = ConfirmationGate(input_func=lambda prompt: answers.pop(0), output_func=self.output.append)
        self.client = client or destination_client()
        self.connector = CountingConnector(
            lambda: self.client, self.run_log,
            required_modules=modules or [],
            module_finder=lambda name: None
        )
        self.transfer = transfer or ScriptedFolderTransfer()
        persister = ReportPersister(
            self.run_log,
            chooser=chooser or (lambda suggested: self.report_path),
            output_directory=self.tmp.name
        )
        return MigrationOrchestrator(
            run_log=self.run_log,
            metadata=RunMetadata.open('Wave1', start_time=datetime(2024, 5, 1, 9, 0, 0)),
            collector=InventoryCollector(FakeSourceClient(folders, STATISTICS, failing), self.run_log),
            gate=gate,
            connector=self.connector,
            transfer=self.transfer,
            persister=persister,
            dry_run=dry_run,
            output_func=self.output.append
        )

    def test_full_run(self):
        summary = self.build(transfer=ScriptedFolderTransfer({
            'B': ItemTransferFailure('B', 'quota exceeded')
        })).run()

        self.assertEqual(summary.result, RunResult.COMPLETED)
        self.assertEqual(summary.exit_code, 0)
        self.assertEqual([o.status for o in summary.outcomes],
                         [OutcomeStatus.SUCCESS, OutcomeStatus.FAILED, OutcomeStatus.SUCCESS])
        self.assertTrue(summary.metadata.is_finalized)
        self.assertEqual(summary.save_result.status, SaveStatus.SAVED)
        self.assertEqual(self.connector.disconnect_calls, 1)
        self.client.close.assert_called_once()

        with open(self.report_path, encoding='utf-8') as f:
            soup = BeautifulSoup(f.read(), 'lxml')
        self.assertEqual(len(soup.select('#migration-results tbody tr')), 3)
        self.assertEqual(len(soup.select('#folder-inventory tbody tr')), 3)
        self.assertEqual(len(soup.select('#folder-inventory td.unknown')), 7)

    def test_report_log_covers_the_run_up_to_generation(self):
        self.build().run()
        with open(self.report_path, encoding='utf-8') as f:
            soup = BeautifulSoup(f.read(), 'lxml')
        lines = [div.get_text() for div in soup.select('#operation-log .log-entry')]
        self.assertTrue(any("Could not read statistics for '\\B'" in line for line in lines))
        self.assertTrue(any("Connected to destination organization 'Contoso'" in line for line in lines))
        self.assertTrue(any("Generating migration report" in line for line in lines))

    def test_empty_inventory_halts_before_gate(self):
        orchestrator = self.build(folders=[], answers=())
        summary = orchestrator.run()

        self.assertEqual(summary.result, RunResult.EMPTY_INVENTORY)
        self.assertEqual(summary.exit_code, 1)
        self.assertEqual(self.connector.connect_calls, 0)
        self.assertEqual(self.connector.disconnect_calls, 1)
        self.assertFalse(os.path.exists(self.report_path))

    def test_declined_migrates_nothing(self):
        summary = self.build(answers=('x', 'N')).run()

        self.assertEqual(summary.result, RunResult.DECLINED)
        self.assertEqual(summary.exit_code, 0)
        self.assertEqual(self.transfer.calls, [])
        self.assertEqual(self.connector.connect_calls, 0)
        self.assertEqual(self.connector.disconnect_calls, 1)
        self.assertFalse(os.path.exists(self.report_path))
        self.assertIn("Please answer Y or N.", self.output)

    def test_dry_run_skips_gate(self):
        summary = self.build(answers=(), dry_run=True).run()
        self.assertEqual(summary.result, RunResult.DRY_RUN)
        self.assertEqual(summary.exit_code, 0)
        self.assertEqual(self.transfer.calls, [])
        self.assertTrue(any("PUBLIC FOLDER INVENTORY" in line for line in self.output))

    def test_connection_failure_exits_1(self):
        summary = self.build(client=destination_client(open_error=DestinationApiError("401"))).run()

        self.assertEqual(summary.result, RunResult.FAILED)
        self.assertEqual(summary.exit_code, 1)
        self.assertEqual(self.transfer.calls, [])
        self.assertEqual(self.connector.disconnect_calls, 1)
        self.assertTrue(any(e.level is LogLevel.ERROR and "Connection failed" in e.message
                            for e in self.run_log.snapshot()))

    def test_missing_prerequisite_exits_1(self):
        summary = self.build(modules=['exchange_online_management']).run()
        self.assertEqual(summary.result, RunResult.FAILED)
        self.assertIn('exchange_online_management', summary.error)
        self.client.open_session.assert_not_called()
        self.assertEqual(self.connector.disconnect_calls, 1)

    def test_report_save_skipped_still_succeeds(self):
        summary = self.build(chooser=lambda suggested: None).run()
        self.assertEqual(summary.result, RunResult.COMPLETED)
        self.assertEqual(summary.save_result.status, SaveStatus.SKIPPED)
        self.assertEqual(summary.exit_code, 0)

    def test_closed_input_after_save_keeps_run_successful(self):
        orchestrator = self.build()

        def closed(prompt):
            raise EOFError

        orchestrator.persister.open_gate = ConfirmationGate(input_func=closed, output_func=self.output.append)
        summary = orchestrator.run()

        self.assertEqual(summary.result, RunResult.COMPLETED)
        self.assertEqual(summary.exit_code, 0)
        self.assertTrue(os.path.exists(self.report_path))
        self.assertEqual(self.connector.disconnect_calls, 1)

    def test_unexpected_error_still_disconnects(self):
        orchestrator = self.build()
        with patch.object(orchestrator.report_generator, 'generate', side_effect=RuntimeError("boom")):
            summary = orchestrator.run()
        self.assertEqual(summary.result, RunResult.FAILED)
        self.assertEqual(self.connector.disconnect_calls, 1)

    def test_closed_input_fails_the_run(self):
        orchestrator = self.build()

        def closed(prompt):
            raise EOFError

        orchestrator.gate.input_func = closed
        summary = orchestrator.run()

        self.assertEqual(summary.result, RunResult.FAILED)
        self.assertEqual(summary.exit_code, 1)
        self.assertEqual(self.transfer.calls, [])
        self.assertEqual(self.connector.disconnect_calls, 1)


class TestFromConfig(unittest.TestCase):
    def test_builds_every_stage(self):
        config = {
            'source': {'base_url': 'https://mail.example.local', 'username': 'u', 'password': 'p'},
            'destination': {'base_url': 'https://outlook.example.com/api', 'access_token': 'tok'},
            'migration': {'batch_label': 'Wave9', 'top_n': 3, 'dry_run': True},
            'report': {'path': '/tmp/wave9.html', 'offer_open': False}
        }
        orchestrator = MigrationOrchestrator.from_config(config, run_log=RunLog(),
                                                         input_func=lambda prompt: 'N')

        self.assertEqual(orchestrator.metadata.batch_label, 'Wave9')
        self.assertEqual(orchestrator.top_n, 3)
        self.assertTrue(orchestrator.dry_run)
        self.assertIsNone(orchestrator.persister.open_gate)
        self.assertEqual(orchestrator.persister.chooser('ignored.html'), '/tmp/wave9.html')
        self.assertEqual(orchestrator.transfer.batch_label, 'Wave9')


if __name__ == '__main__':
    unittest.main()
