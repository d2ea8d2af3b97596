"""Tests for configuration loading, validation and CLI merging."""

import argparse
import os
import tempfile
import unittest
from unittest.mock import patch

from config_loader import ConfigLoader, get_nested


def valid_config():
    return {
        'source': {
            'base_url': 'https://mail.example.local',
            'auth_type': 'basic',
            'username': 'svc',
            'password': 'pw'
        },
        'destination': {
            'base_url': 'https://outlook.example.com/api',
            'token_url': 'https://login.example.com/token',
            'client_id': 'id',
            'client_secret': 'secret'
        },
        'migration': {'top_n': 5}
    }


class TestConfigLoader(unittest.TestCase):
    def test_load_substitutes_environment(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'config.yaml')
            with open(path, 'w', encoding='utf-8') as f:
                f.write("source:\n  password: ${PF_TEST_PASSWORD}\n  username: ${PF_TEST_MISSING}\n")

            with patch.dict(os.environ, {'PF_TEST_PASSWORD': 'from-env'}):
                config = ConfigLoader.load(path)

        self.assertEqual(config['source']['password'], 'from-env')
        self.assertEqual(config['source']['username'], '${PF_TEST_MISSING}')

    def test_load_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            ConfigLoader.load('/nonexistent/config.yaml')

    def test_load_rejects_non_mapping(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'config.yaml')
            with open(path, 'w', encoding='utf-8') as f:
                f.write("- just\n- a list\n")
            with self.assertRaises(ValueError):
                ConfigLoader.load(path)

    def test_valid_config_passes(self):
        ConfigLoader.validate(valid_config())

    def test_static_token_skips_client_credentials(self):
        config = valid_config()
        config['destination'] = {'base_url': 'https://outlook.example.com/api', 'access_token': 'tok'}
        ConfigLoader.validate(config)

    def test_missing_source_url(self):
        config = valid_config()
        del config['source']['base_url']
        with self.assertRaisesRegex(ValueError, 'source.base_url'):
            ConfigLoader.validate(config)

    def test_unsubstituted_variable(self):
        config = valid_config()
        config['source']['password'] = '${PF_SOURCE_PASSWORD}'
        with self.assertRaisesRegex(ValueError, 'PF_SOURCE_PASSWORD'):
            ConfigLoader.validate(config)

    def test_bad_url_scheme(self):
        config = valid_config()
        config['destination']['base_url'] = 'ftp://outlook.example.com'
        with self.assertRaises(ValueError):
            ConfigLoader.validate(config)

    def test_top_n_must_be_positive(self):
        config = valid_config()
        config['migration']['top_n'] = 0
        with self.assertRaises(ValueError):
            ConfigLoader.validate(config)

    def test_required_modules_must_be_list(self):
        config = valid_config()
        config['destination']['required_modules'] = 'requests'
        with self.assertRaises(ValueError):
            ConfigLoader.validate(config)

    def test_merge_with_args(self):
        args = argparse.Namespace(
            batch_label='Wave2',
            dry_run=True,
            top=3,
            report_path='/tmp/report.html',
            no_open=True,
            log_file=None,
            verbose=1
        )
        original = valid_config()
        merged = ConfigLoader.merge_with_args(original, args)

        self.assertEqual(get_nested(merged, 'migration.batch_label'), 'Wave2')
        self.assertTrue(get_nested(merged, 'migration.dry_run'))
        self.assertEqual(get_nested(merged, 'migration.top_n'), 3)
        self.assertEqual(get_nested(merged, 'report.path'), '/tmp/report.html')
        self.assertFalse(get_nested(merged, 'report.offer_open'))
        self.assertEqual(get_nested(merged, 'logging.level'), 'DEBUG')
        self.assertNotIn('report', original)

    def test_get_nested_default(self):
        self.assertEqual(get_nested({'a': {'b': 1}}, 'a.c', 'x'), 'x')
        self.assertEqual(get_nested({'a': {'b': 1}}, 'a.b'), 1)


if __name__ == '__main__':
    unittest.main()
