"""Tests for sequential folder migration and the folder transfer strategies."""

import unittest
from unittest.mock import MagicMock

from destination_client import ItemTransferFailure
from logger import RunLog
from models import UNKNOWN, FolderRecord, FolderState, OutcomeStatus, TransferResult
from orchestrator.folder_transfer import DestinationFolderTransfer, ScriptedFolderTransfer
from orchestrator.migration_executor import InvalidStateTransition, MigrationExecutor


def record(name, items=UNKNOWN):
    return FolderRecord(name=name, identity='\\' + name, parent_path='\\', item_count=items)


class TestMigrationExecutor(unittest.TestCase):
    def setUp(self):
        self.run_log = RunLog()

    def test_one_outcome_per_record_in_order(self):
        inventory = [record('A', 3), record('B', 5), record('C')]
        transfer = ScriptedFolderTransfer()

        outcomes = MigrationExecutor(transfer, self.run_log).run(inventory)

        self.assertEqual([o.folder_name for o in outcomes], ['A', 'B', 'C'])
        self.assertEqual([o.items_migrated for o in outcomes], [3, 5, 0])
        self.assertEqual(transfer.calls, ['\\A', '\\B', '\\C'])

    def test_failure_does_not_stop_batch(self):
        inventory = [record('A', 3), record('B', 5), record('C', 1)]
        transfer = ScriptedFolderTransfer({
            'B': ItemTransferFailure('B', 'quota exceeded')
        })
        executor = MigrationExecutor(transfer, self.run_log)

        outcomes = executor.run(inventory)

        self.assertEqual([o.status for o in outcomes],
                         [OutcomeStatus.SUCCESS, OutcomeStatus.FAILED, OutcomeStatus.SUCCESS])
        self.assertEqual(outcomes[1].items_migrated, 0)
        self.assertIn('quota exceeded', outcomes[1].error_message)
        self.assertIn('ItemTransferFailure', outcomes[1].error_message)
        self.assertEqual(executor.states['\\B'], FolderState.FAILED)
        self.assertEqual(executor.states['\\C'], FolderState.SUCCESS)

    def test_unsuccessful_result_without_message(self):
        transfer = ScriptedFolderTransfer({'\\A': TransferResult(success=False)})
        outcomes = MigrationExecutor(transfer, self.run_log).run([record('A', 2)])
        self.assertEqual(outcomes[0].error_message, "Unknown error")

    def test_every_state_is_terminal(self):
        inventory = [record('A', 1), record('B', 2)]
        transfer = ScriptedFolderTransfer({'A': RuntimeError('boom')})
        executor = MigrationExecutor(transfer, self.run_log)
        executor.run(inventory)
        self.assertTrue(all(state.is_terminal for state in executor.states.values()))

    def test_log_lines(self):
        transfer = ScriptedFolderTransfer({'B': TransferResult(success=False, error_message='denied')})
        MigrationExecutor(transfer, self.run_log).run([record('A', 4), record('B', 1)])

        messages = [entry.message for entry in self.run_log.snapshot()]
        self.assertIn("Migrated 'A' (4 items)", messages)
        self.assertIn("Failed to migrate 'B': denied", messages)
        self.assertEqual(self.run_log.error_count, 1)
        self.assertEqual(self.run_log.warning_count, 1)

    def test_empty_inventory(self):
        self.assertEqual(MigrationExecutor(ScriptedFolderTransfer(), self.run_log).run([]), [])

    def test_repeated_identity_fails_only_that_record(self):
        inventory = [record('A', 1), record('A', 1), record('B', 2)]
        transfer = ScriptedFolderTransfer()

        outcomes = MigrationExecutor(transfer, self.run_log).run(inventory)

        self.assertEqual([o.status for o in outcomes],
                         [OutcomeStatus.SUCCESS, OutcomeStatus.FAILED, OutcomeStatus.SUCCESS])
        self.assertIn("cannot move from Success", outcomes[1].error_message)
        self.assertEqual(transfer.calls, ['\\A', '\\B'])

    def test_terminal_state_cannot_change(self):
        executor = MigrationExecutor(ScriptedFolderTransfer(), self.run_log)
        executor.run([record('A', 1)])
        with self.assertRaises(InvalidStateTransition):
            executor._transition('\\A', FolderState.IN_PROGRESS)


class TestDestinationFolderTransfer(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.transfer = DestinationFolderTransfer(lambda: self.client, 'Wave1')

    def test_completed_response(self):
        self.client.migrate_folder.return_value = {'status': 'Completed', 'itemsMigrated': '12'}
        result = self.transfer.transfer(record('A', 12))

        self.assertTrue(result.success)
        self.assertEqual(result.items_migrated, 12)
        self.client.migrate_folder.assert_called_once_with(
            identity='\\A', name='A', parent_path='\\', mail_enabled=False, batch_label='Wave1'
        )

    def test_failed_response_with_error_object(self):
        self.client.migrate_folder.return_value = {'status': 'Failed', 'error': {'message': 'mailbox full'}}
        result = self.transfer.transfer(record('A'))
        self.assertFalse(result.success)
        self.assertEqual(result.error_message, 'mailbox full')

    def test_unexpected_status(self):
        self.client.migrate_folder.return_value = {'status': 'Queued'}
        result = self.transfer.transfer(record('A'))
        self.assertFalse(result.success)
        self.assertIn("queued", result.error_message)

    def test_request_failure_propagates(self):
        self.client.migrate_folder.side_effect = ItemTransferFailure('A', '503')
        with self.assertRaises(ItemTransferFailure):
            self.transfer.transfer(record('A'))


if __name__ == '__main__':
    unittest.main()
