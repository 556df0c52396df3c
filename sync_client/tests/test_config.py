import os
import unittest
from unittest import mock

from sync_client.config import ClientConfig


@mock.patch('sync_client.config.load_dotenv')
class ClientConfigFromEnvTests(unittest.TestCase):

    def config_with(self, **env):
        with mock.patch.dict(os.environ, env, clear=True):
            return ClientConfig.from_env()

    def test_defaults_when_unset(self, load_dotenv):
        config = self.config_with()

        self.assertEqual(config.base_url, 'http://localhost:8000')
        self.assertIsNone(config.token)
        self.assertEqual(config.synced_retention, 300.0)
        load_dotenv.assert_called_once_with()

    def test_reads_values(self, load_dotenv):
        config = self.config_with(
            SHELFGUARD_API_URL='http://shop.local/',
            SHELFGUARD_TOKEN='abc123',
            SHELFGUARD_BACKOFF_MAX='8',
            SHELFGUARD_SYNCED_RETENTION='60',
        )

        self.assertEqual(config.base_url, 'http://shop.local')
        self.assertEqual(config.token, 'abc123')
        self.assertEqual(config.backoff_max, 8.0)
        self.assertEqual(config.synced_retention, 60.0)

    def test_retention_none_keeps_synced_entries(self, load_dotenv):
        self.assertIsNone(self.config_with(SHELFGUARD_SYNCED_RETENTION='none').synced_retention)
        self.assertIsNone(self.config_with(SHELFGUARD_SYNCED_RETENTION='None').synced_retention)

    def test_empty_retention_keeps_synced_entries(self, load_dotenv):
        self.assertIsNone(self.config_with(SHELFGUARD_SYNCED_RETENTION='').synced_retention)

    def test_empty_float_setting_falls_back_to_default(self, load_dotenv):
        self.assertEqual(self.config_with(SHELFGUARD_TICK_INTERVAL='').tick_interval, 2.0)


if __name__ == '__main__':
    unittest.main()
