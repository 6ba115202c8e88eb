import unittest
from unittest.mock import MagicMock, patch

import main
from cache import MemoryCache
from utilities.settings import get_default_config


@patch('logging.info')
class TestMainFunctions(unittest.TestCase):
    def config(self):
        config = get_default_config()
        config['Redis']['enabled'] = False
        config['Debrid Provider']['api_key'] = 'token'
        config['Debrid Provider']['error_on_api_error'] = True
        config['Destination']['url'] = 'http://pyload:8000'
        return config

    def test_build_application_wires_components(self, mock_info):
        app, cache_store, api = main.build_application(self.config())

        package_manager = app.extensions['package_manager']
        self.assertIsInstance(cache_store, MemoryCache)
        self.assertIs(package_manager.cache, cache_store)
        self.assertEqual(package_manager.cache_ttl, 86400)
        self.assertEqual(package_manager.debrid_service, 'realdebrid')
        self.assertTrue(package_manager.batch_processor.stop_on_error)
        self.assertEqual(package_manager.destination.submit_url, 'http://pyload:8000/flash/addcrypted2')
        self.assertIs(package_manager.destination.api, api)

        provider = package_manager.batch_processor.resolver.get_provider('realdebrid')
        self.assertEqual(provider.api_key, 'token')
        self.assertIs(provider.api, api)

    @patch('logging.error')
    def test_check_debrid_connectivity_logs_failure(self, mock_error, mock_info):
        provider = MagicMock()
        provider.name = 'realdebrid'
        provider.check_connectivity.return_value = (False, {'type': 'AUTH_ERROR', 'message': 'Invalid API key'})
        resolver = MagicMock()
        resolver.get_provider.return_value = provider

        self.assertFalse(main.check_debrid_connectivity(resolver, 'realdebrid'))
        mock_error.assert_called_once_with("Debrid service realdebrid check failed (AUTH_ERROR): Invalid API key")


if __name__ == '__main__':
    unittest.main()
