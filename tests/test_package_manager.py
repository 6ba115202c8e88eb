import base64
import json
import re
import unittest
from unittest.mock import MagicMock, patch

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cache import MemoryCache, RedisCache, glob_to_regex
from cnl.codec import CnlCodec
from cnl.destination import DestinationClient
from cnl.exceptions import SubmissionError
from debrid.base import DebridProvider, UnsupportedHostError
from debrid.batch_processor import BatchProcessor, NoLinksToProcessError
from debrid.resolver import LinkResolver
from package_manager import (
    EmptyPackageError,
    PackageManager,
    PackageNotFoundError,
    PaginationError,
    ProcessingError,
    parse_pagination,
    split_package_id,
)

KEY_HEX = '0102030405060708090a0b0c0d0e0f10'
JK = f'function f(){{ return "{KEY_HEX}"; }}'
SNAPSHOT_KEY = re.compile(r'^package:pkg1:\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')


def aes(data, decrypt=False):
    key = bytes.fromhex(KEY_HEX)
    cipher = Cipher(algorithms.AES(key), modes.CBC(key))
    worker = cipher.decryptor() if decrypt else cipher.encryptor()
    return worker.update(data) + worker.finalize()


def browser_crypted(text):
    padder = padding.PKCS7(128).padder()
    return base64.b64encode(aes(padder.update(text.encode()) + padder.finalize())).decode()


def download_manager_plaintext(crypted):
    unpadder = padding.PKCS7(128).unpadder()
    padded = aes(base64.b64decode(crypted), decrypt=True)
    return (unpadder.update(padded) + unpadder.finalize()).decode()


class FakeProvider(DebridProvider):
    name = 'realdebrid'

    def __init__(self):
        super().__init__(api_key='token')
        self.calls = []

    def _load_api_key(self):
        return 'token'

    def check_connectivity(self):
        return True, None

    def unrestrict_link(self, link):
        self.calls.append(link)
        if 'bad' in link:
            raise UnsupportedHostError("Real-Debrid API error: hoster_unsupported (16)")
        return {'download': link.replace('http://a/', 'https://dl/'), 'filename': None, 'filesize': None}


class ScanningRedisClient:
    """Redis client double whose SCAN cursor is a table position and COUNT the number of keys examined."""

    def __init__(self, entries):
        self.entries = {key: json.dumps(value) for key, value in entries.items()}
        self.table = list(self.entries)

    def scan(self, cursor=0, match='*', count=10):
        regex = glob_to_regex(match)
        examined = self.table[cursor:cursor + count]
        if cursor:
            # SCAN may return a key again after a rehash
            examined.insert(0, self.table[cursor - 1])
        next_cursor = cursor + count if cursor + count < len(self.table) else 0
        return next_cursor, [key for key in examined if regex.match(key)]

    def get(self, key):
        return self.entries.get(key)


@patch('logging.info')
class TestPackageManager(unittest.TestCase):
    def setUp(self):
        self.provider = FakeProvider()
        self.cache = MemoryCache()
        self.destination = MagicMock(spec=DestinationClient)
        self.destination.submit.return_value = 200
        self.manager = PackageManager(
            codec=CnlCodec(),
            batch_processor=BatchProcessor(LinkResolver({'realdebrid': self.provider})),
            cache=self.cache,
            destination=self.destination,
            debrid_service='realdebrid',
        )
        self.form = {
            'crypted': browser_crypted('http://a/1.zip\nhttp://a/2.zip'),
            'jk': JK,
            'package': 'pkg1',
            'source': 's',
            'passwords': '',
        }

    def submit_one(self):
        self.manager.handle_submission(self.form)
        return self.cache.keys('package:*')[0]

    def test_submission_end_to_end(self, mock_info):
        response = self.manager.handle_submission(self.form)

        self.assertEqual(set(response), {'jk', 'crypted', 'passwords', 'source', 'package'})
        self.assertEqual(response['jk'], JK)
        self.assertEqual(response['package'], 'pkg1')
        self.assertEqual(download_manager_plaintext(response['crypted']), 'https://dl/1.zip\r\nhttps://dl/2.zip')

        keys = self.cache.keys('package:*')
        self.assertEqual(len(keys), 1)
        self.assertRegex(keys[0], SNAPSHOT_KEY)
        snapshot = self.cache.get(keys[0])
        self.assertEqual([link['success'] for link in snapshot['files']['results']], [True, True])
        self.assertEqual(snapshot['files']['stats']['successCount'], 2)

        submitted = self.destination.submit.call_args[0][0]
        self.assertEqual(submitted, {'passwords': '', 'source': 's', 'package': 'pkg1', 'jk': JK,
                                     'crypted': response['crypted']})

    def test_submission_without_package_name_is_not_cached(self, mock_info):
        self.form['package'] = ''
        self.manager.handle_submission(self.form)

        self.assertEqual(self.cache.keys('*'), [])
        self.destination.submit.assert_called_once()

    @patch('logging.error')
    def test_destination_failure_keeps_snapshot(self, mock_error, mock_info):
        self.destination.submit.side_effect = SubmissionError("HTTP error! status: 500", status_code=500)

        with self.assertRaises(ProcessingError) as context:
            self.manager.handle_submission(self.form)

        self.assertEqual(str(context.exception), "Error processing encrypted request")
        self.assertEqual(len(self.cache.keys('package:*')), 1)

    @patch('logging.error')
    def test_garbled_payload_is_a_processing_error(self, mock_error, mock_info):
        self.form['crypted'] = 'bm90IGFsaWduZWQ='

        with self.assertRaises(ProcessingError):
            self.manager.handle_submission(self.form)
        self.assertEqual(self.provider.calls, [])
        self.destination.submit.assert_not_called()

    @patch('logging.error')
    def test_stop_on_error_is_a_processing_error(self, mock_error, mock_info):
        self.manager.batch_processor.stop_on_error = True
        self.form['crypted'] = browser_crypted('http://a/bad.zip\nhttp://a/2.zip')

        with self.assertRaises(ProcessingError):
            self.manager.handle_submission(self.form)
        self.assertEqual(self.cache.keys('*'), [])

    @patch('logging.warning')
    def test_failed_links_are_forwarded_unchanged(self, mock_warning, mock_info):
        self.form['crypted'] = browser_crypted('http://a/bad.zip\nhttp://a/2.zip')

        response = self.manager.handle_submission(self.form)

        self.assertEqual(download_manager_plaintext(response['crypted']), 'http://a/bad.zip\r\nhttps://dl/2.zip')

    def test_list_packages_hides_secrets(self, mock_info):
        key = self.submit_one()

        page = self.manager.list_packages()

        self.assertEqual(page['pagination'], {'page': 1, 'pageSize': 10, 'totalItems': 1, 'totalPages': 1, 'hasMore': False})
        item = page['data'][0]
        self.assertEqual(item['package'], key[len('package:'):])
        for secret in ('crypted', 'decrypted', 'jk'):
            self.assertNotIn(secret, item)
        self.assertIn('files', item)

    def test_list_packages_pages(self, mock_info):
        for i in range(3):
            self.cache.set(f'package:pkg{i}:2024-01-01T00:00:0{i}.000Z', {'package': f'pkg{i}', 'jk': JK})

        first = self.manager.list_packages(page=1, page_size=2)
        second = self.manager.list_packages(page=2, page_size=2)

        self.assertTrue(first['pagination']['hasMore'])
        self.assertFalse(second['pagination']['hasMore'])
        self.assertEqual(first['pagination']['totalPages'], 2)
        names = [item['package'] for item in first['data'] + second['data']]
        self.assertEqual(names, [f'pkg{i}:2024-01-01T00:00:0{i}.000Z' for i in range(3)])

    def test_list_packages_on_redis_backend(self, mock_info):
        entries = {}
        for i in reversed(range(60)):
            entries[f'other:{i}'] = {'value': i}
            entries[f'package:pkg{i:02d}:2024-01-01T00:{i:02d}:00.000Z'] = {'package': f'pkg{i:02d}', 'jk': JK}
        self.manager.cache = RedisCache(ScanningRedisClient(entries))

        names = []
        for page in range(1, 8):
            result = self.manager.list_packages(page=page, page_size=10)
            names.extend(item['package'] for item in result['data'])
            self.assertEqual(result['pagination']['totalItems'], 60)
            self.assertEqual(result['pagination']['totalPages'], 6)
            self.assertEqual(result['pagination']['hasMore'], page < 6)
            self.assertEqual(len(result['data']), 10 if page <= 6 else 0)

        self.assertEqual(names, [f'pkg{i:02d}:2024-01-01T00:{i:02d}:00.000Z' for i in range(60)])

    def test_list_packages_orders_by_timestamp(self, mock_info):
        self.cache.set('package:b:2024-01-01T00:00:00.000Z', {'package': 'b'})
        self.cache.set('package:a:2024-06-01T00:00:00.000Z', {'package': 'a'})

        names = [item['package'] for item in self.manager.list_packages()['data']]

        self.assertEqual(names, ['b:2024-01-01T00:00:00.000Z', 'a:2024-06-01T00:00:00.000Z'])

    def test_pagination_validation(self, mock_info):
        self.assertEqual(parse_pagination(None, None), (1, 10))
        self.assertEqual(parse_pagination('2', '50'), (2, 50))
        for page, page_size in (('0', '10'), ('abc', '10'), ('1', '0'), ('1', '51'), ('1', 'x'), (-1, 10)):
            with self.subTest(page=page, page_size=page_size):
                with self.assertRaises(PaginationError):
                    self.manager.list_packages(page, page_size)

    def test_get_and_delete_package(self, mock_info):
        package_id = self.submit_one()[len('package:'):]

        self.assertEqual(self.manager.get_package(package_id)['jk'], JK)
        self.manager.delete_package(package_id)

        with self.assertRaises(PackageNotFoundError):
            self.manager.get_package(package_id)
        with self.assertRaises(PackageNotFoundError):
            self.manager.delete_package(package_id)

    @patch('logging.warning')
    def test_file_list_contains_only_successful_links(self, mock_warning, mock_info):
        self.form['crypted'] = browser_crypted('http://a/1.zip\nhttp://a/bad.zip\nhttp://a/3.zip')
        package_id = self.submit_one()[len('package:'):]

        content, filename = self.manager.get_file_list(package_id)

        self.assertEqual(content, 'https://dl/1.zip\nhttps://dl/3.zip')
        self.assertEqual(filename, f'{package_id}-filelist.txt')

    def test_file_list_of_empty_package(self, mock_info):
        self.cache.set('package:empty:2024-01-01T00:00:00.000Z', {'package': 'empty', 'jk': JK, 'crypted': 'c'})

        with self.assertRaises(EmptyPackageError):
            self.manager.get_file_list('empty:2024-01-01T00:00:00.000Z')
        with self.assertRaises(PackageNotFoundError):
            self.manager.get_file_list('missing')

    def test_resubmit_reencrypts_cached_links(self, mock_info):
        key = self.submit_one()
        snapshot = self.cache.get(key)
        self.destination.submit.reset_mock()

        crypted = self.manager.resubmit_package(key[len('package:'):])

        self.assertEqual(download_manager_plaintext(crypted), 'https://dl/1.zip\r\nhttps://dl/2.zip')
        self.assertEqual(self.destination.submit.call_args[0][0]['crypted'], crypted)
        self.assertEqual(self.provider.calls, ['http://a/1.zip', 'http://a/2.zip'])
        self.assertEqual(self.cache.get(key), snapshot)

    def test_resubmit_failure_leaves_cache_untouched(self, mock_info):
        key = self.submit_one()
        snapshot = self.cache.get(key)
        self.destination.submit.side_effect = SubmissionError("Destination unreachable: refused")

        with self.assertRaises(SubmissionError):
            self.manager.resubmit_package(key[len('package:'):])
        self.assertEqual(self.cache.get(key), snapshot)

    def test_reprocess_creates_new_version(self, mock_info):
        key = self.submit_one()
        package_id = key[len('package:'):]

        with patch('package_manager.utc_timestamp', return_value='2099-01-01T00:00:00.000Z'):
            result = self.manager.reprocess_package(package_id)

        self.assertEqual(result['version'], 'pkg1:2099-01-01T00:00:00.000Z')
        self.assertEqual(sorted(self.cache.keys('package:*')), sorted([key, 'package:pkg1:2099-01-01T00:00:00.000Z']))
        self.assertEqual(len(self.provider.calls), 4)
        self.assertEqual(result['package']['files']['stats']['successCount'], 2)

    def test_reprocess_keeps_name_with_colons(self, mock_info):
        self.cache.set('package:Show: S01:2024-01-01T00:00:00.000Z',
                       {'package': 'Show: S01', 'jk': JK, 'decrypted': 'http://a/1.zip'})

        with patch('package_manager.utc_timestamp', return_value='2099-01-01T00:00:00.000Z'):
            result = self.manager.reprocess_package('Show: S01:2024-01-01T00:00:00.000Z')

        self.assertEqual(result['version'], 'Show: S01:2099-01-01T00:00:00.000Z')
        self.assertTrue(self.cache.exists('package:Show: S01:2099-01-01T00:00:00.000Z'))

    def test_split_package_id(self, mock_info):
        self.assertEqual(split_package_id('Show: S01:2024-01-01T00:00:00.000Z'), ('Show: S01', '2024-01-01T00:00:00.000Z'))
        self.assertEqual(split_package_id('pkg1:2024-01-01T00:00:00Z'), ('pkg1', '2024-01-01T00:00:00Z'))
        self.assertEqual(split_package_id('no timestamp: here'), ('no timestamp: here', ''))

    @patch('logging.error')
    def test_unexpected_failure_is_tracked(self, mock_error, mock_info):
        self.manager.batch_processor = MagicMock()
        self.manager.batch_processor.process.side_effect = RuntimeError("boom")

        with patch('package_manager.package_logger') as mock_tracker:
            with self.assertRaises(ProcessingError):
                self.manager.handle_submission(self.form)

        events = [call[0][0] for call in mock_tracker.info.call_args_list]
        self.assertEqual(events[-1], {'event': 'failed', 'package': 'pkg1', 'error': 'boom', 'stage': 'RuntimeError'})
        self.destination.submit.assert_not_called()

    @patch('logging.error')
    def test_reprocess_empty_package(self, mock_error, mock_info):
        self.cache.set('package:empty:2024-01-01T00:00:00.000Z', {'package': 'empty', 'jk': JK, 'decrypted': '\n'})

        with self.assertRaises(NoLinksToProcessError):
            self.manager.reprocess_package('empty:2024-01-01T00:00:00.000Z')


if __name__ == '__main__':
    unittest.main()
