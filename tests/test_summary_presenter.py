"""Tests for inventory aggregation and the console summary."""

import unittest

from models import UNKNOWN, FolderRecord
from orchestrator.summary_presenter import (
    format_console_summary,
    format_size,
    hierarchy_view,
    summarize,
    top_folders,
    total_items,
)


def record(name, parent='\\', items=UNKNOWN, size=UNKNOWN, mail=False):
    return FolderRecord(
        name=name,
        identity=parent.rstrip('\\') + '\\' + name,
        parent_path=parent,
        item_count=items,
        total_size=size,
        mail_enabled=mail
    )


class TestSummaryPresenter(unittest.TestCase):
    def setUp(self):
        self.inventory = [
            record('Sales', items=10, size=4096, mail=True),
            record('EMEA', '\\Sales', items=30, size=1024),
            record('Archive', items=UNKNOWN),
            record('HR', items=10, size=0),
            record('Payroll', '\\HR\\Private', items=2),
        ]

    def test_total_items_ignores_unknown(self):
        self.assertEqual(total_items(self.inventory), 52)

    def test_top_folders_descending_and_stable(self):
        ranked = top_folders(self.inventory, 3)
        self.assertEqual([r.name for r in ranked], ['EMEA', 'Sales', 'HR'])

    def test_top_folders_excludes_unknown(self):
        ranked = top_folders(self.inventory, 10)
        self.assertNotIn('Archive', [r.name for r in ranked])
        self.assertEqual(len(ranked), 4)

    def test_top_n_larger_than_inventory(self):
        self.assertEqual(len(top_folders(self.inventory[:1], 10)), 1)

    def test_hierarchy_grouped_by_depth(self):
        view = hierarchy_view(self.inventory)
        self.assertEqual(list(view.keys()), [0, 1, 2])
        self.assertEqual([r.name for r in view[0]], ['Sales', 'Archive', 'HR'])
        self.assertEqual([r.name for r in view[1]], ['EMEA'])
        self.assertEqual([r.name for r in view[2]], ['Payroll'])

    def test_summarize_does_not_mutate(self):
        before = list(self.inventory)
        summary = summarize(self.inventory, top_n=2)
        self.assertEqual(self.inventory, before)
        self.assertEqual(summary.total_folders, 5)
        self.assertEqual(summary.total_size, 5120)
        self.assertEqual(summary.mail_enabled, 1)
        self.assertEqual(summary.unknown_statistics, 1)
        self.assertEqual(len(summary.top_folders), 2)

    def test_console_summary(self):
        summary = summarize(self.inventory)
        text = format_console_summary(summary, self.inventory)
        self.assertIn("PUBLIC FOLDER INVENTORY", text)
        self.assertIn("Folders:       5", text)
        self.assertIn("Archive (?)", text)
        self.assertIn("Sales (10) [mail]", text)
        self.assertIn("No statistics: 1", text)

    def test_console_summary_truncates_tree(self):
        summary = summarize(self.inventory)
        text = format_console_summary(summary, self.inventory, max_tree_lines=2)
        self.assertIn("... 3 more folders", text)

    def test_format_size(self):
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(2048), "2.0 KB")
        self.assertEqual(format_size(5 * 1024 * 1024), "5.0 MB")


if __name__ == '__main__':
    unittest.main()
