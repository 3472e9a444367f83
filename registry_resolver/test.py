import asyncio
import datetime
import io
import json
import os
import unittest
from unittest import mock

import aiohttp
import yaml

from registry_resolver import (
    ConfigError,
    Image,
    InstrumentedRemote,
    InvalidReference,
    LoggingMetrics,
    ManifestFetchError,
    Metrics,
    NameDefaults,
    Registry,
    RemoteUnavailable,
    Repository,
    TagListError,
    canonicalize,
    parse_reference,
    sort_images,
)
from registry_resolver.__main__ import main
from registry_resolver.arguments import arg_parser
from registry_resolver.config import apply_arguments, check_log_level, load_config
from registry_resolver.remotes import RemoteFactory, base, init_registries
from registry_resolver.remotes.docker_io import DockerIORemote, MANIFEST_LIST_V2, MANIFEST_V2, parse_created
from registry_resolver.remotes.quay_io import QuayIORemote


test_dir = os.path.join(os.path.dirname(__file__), 'test/')
init_registries()

UTC = datetime.timezone.utc


def _testfile(path):
    """Return location of text fixture file."""
    return os.path.join(test_dir, path)


class FakeRemote(base.Remote):
    """In-process registry serving the repositories in registry.test.yaml."""

    registry_host = 'registry.test'
    extra = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        with open(_testfile('registry.test.yaml')) as fl:
            self.repositories = yaml.load(fl, Loader=yaml.SafeLoader)
        self.repositories.update(self.extra)

        self.list_calls = []
        self.fetch_calls = []
        self.in_flight = 0
        self.finished = 0
        self.releases = []

    def _tag_entry(self, repository, tag):
        for entry in self.repositories[repository.path]['tags']:
            if entry['tag'] == tag:
                return entry
        raise KeyError(tag)

    async def _list_tags(self, repository):
        self.list_calls.append(repository)
        data = self.repositories.get(repository.path)
        if data is None or data.get('list_error'):
            raise aiohttp.ClientConnectionError(f'no tags for {repository}')
        return [entry['tag'] for entry in data['tags']]

    async def _fetch_manifest(self, repository, tag):
        self.fetch_calls.append(tag)
        self.in_flight += 1
        try:
            entry = self._tag_entry(repository, tag)
            await asyncio.sleep(entry.get('delay', 0))
            if entry.get('cancelled'):
                raise asyncio.CancelledError()
            if entry.get('fail'):
                raise ValueError(f'broken manifest for {tag}')
            created = entry.get('created')
            created_at = datetime.datetime.fromisoformat(
                created[:19]).replace(tzinfo=UTC) if created else None
            return Image.for_tag(repository, tag, entry['digest'], created_at)
        finally:
            self.in_flight -= 1
            self.finished += 1

    async def cancel(self):
        self.releases.append((self.finished, self.in_flight))
        await super().cancel()


class RecordingFactory(RemoteFactory):

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.remotes = []

    async def create_for(self, host):
        remote = await super().create_for(host)
        self.remotes.append(remote)
        return remote


def _response(payload, headers=None):
    response = mock.Mock()
    response.json = mock.AsyncMock(return_value=payload)
    response.headers = headers or {}
    response.links = {}
    return response


class RepositoryNameTest(unittest.TestCase):

    defaults = NameDefaults()

    def test_unqualified_names(self):
        self.assertEqual(Repository('docker.io', 'library', 'helloworld'),
                         canonicalize('helloworld', self.defaults))
        self.assertEqual(Repository('docker.io', 'foo', 'helloworld'),
                         canonicalize('foo/helloworld', self.defaults))

    def test_same_repository_regardless_of_explicit_elements(self):
        self.assertEqual(canonicalize('helloworld', self.defaults),
                         canonicalize('library/helloworld', self.defaults))
        self.assertEqual(canonicalize('helloworld', self.defaults),
                         canonicalize('docker.io/library/helloworld', self.defaults))

    def test_qualified_hosts(self):
        self.assertEqual(Repository('quay.io', 'foo', 'helloworld'),
                         canonicalize('quay.io/foo/helloworld', self.defaults))
        self.assertEqual(Repository('localhost:5000', 'library', 'app'),
                         canonicalize('localhost:5000/app', self.defaults))
        self.assertEqual(Repository('ghcr.io', 'org/team', 'app'),
                         canonicalize('ghcr.io/org/team/app', self.defaults))

    def test_explicit_defaults(self):
        defaults = NameDefaults(host='registry.test', namespace='base')
        repository = canonicalize('app', defaults)
        self.assertEqual(Repository('registry.test', 'base', 'app'), repository)
        self.assertEqual('registry.test/base/app', str(repository))

    def test_invalid_references(self):
        for reference in ('', 'Helloworld', 'foo//bar', 'quay.io/', 'foo/-bar'):
            with self.subTest(reference=reference), self.assertRaises(InvalidReference):
                canonicalize(reference, self.defaults)

    def test_parse_reference(self):
        self.assertEqual((canonicalize('helloworld', self.defaults), '1.0'),
                         parse_reference('helloworld:1.0', self.defaults))
        self.assertEqual((Repository('localhost:5000', 'library', 'app'), None),
                         parse_reference('localhost:5000/app', self.defaults))
        self.assertEqual((Repository('localhost:5000', 'library', 'app'), 'v2'),
                         parse_reference('localhost:5000/app:v2', self.defaults))

    def test_parse_reference_rejects_digests_and_empty_tags(self):
        for reference in ('helloworld@sha256:abcd', 'helloworld:'):
            with self.subTest(reference=reference), self.assertRaises(InvalidReference):
                parse_reference(reference, self.defaults)


class ImageOrderTest(unittest.TestCase):

    def _image(self, name, hour=None):
        created_at = datetime.datetime(2020, 1, 1, hour, tzinfo=UTC) if hour is not None else None
        return Image(name, f'sha256:{name}', created_at)

    def test_missing_timestamp_sorts_first(self):
        t1, t2, t3 = self._image('t1', 3), self._image('t2', 2), self._image('t3', 1)
        undated = self._image('undated')
        self.assertEqual([undated, t1, t2, t3], sort_images([t2, t3, undated, t1]))
        self.assertEqual([undated, t1, t2, t3], sort_images([t3, t1, t2, undated]))

    def test_equal_timestamps_tie_break_by_name(self):
        a, b = self._image('a', 5), self._image('b', 5)
        self.assertEqual([a, b], sort_images([b, a]))

    def test_two_missing_timestamps_order_by_name(self):
        a, b = self._image('a'), self._image('b')
        self.assertEqual([a, b], sort_images([b, a]))
        self.assertEqual([a, b], sort_images([a, b]))


class RegistryTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.defaults = NameDefaults(host='registry.test')
        self.factory = RecordingFactory()
        self.metrics = LoggingMetrics()
        self.registry = Registry(self.factory, self.metrics)

    def _repo(self, reference):
        return canonicalize(reference, self.defaults)

    @property
    def remote(self):
        self.assertEqual(1, len(self.factory.remotes))
        return self.factory.remotes[0]


class RegistryListImagesTest(RegistryTest):

    async def test_all_tags_resolve_sorted(self):
        repository = self._repo('helloworld')
        images = await self.registry.list_images(repository)

        self.assertEqual(
            ['registry.test/library/helloworld:nightly',
             'registry.test/library/helloworld:2.0',
             'registry.test/library/helloworld:1.0',
             'registry.test/library/helloworld:1.1'],
            [image.name for image in images],
        )
        self.assertEqual(datetime.datetime(2021, 6, 1, 12, 30, tzinfo=UTC), images[1].created_at)
        self.assertIsNone(images[0].created_at)

        self.assertEqual([repository], self.remote.list_calls)
        self.assertEqual(['1.0', '1.1', '2.0', 'nightly'], sorted(self.remote.fetch_calls))
        self.assertEqual([(4, 0)], self.remote.releases)

    async def test_metrics_recorded_for_every_call(self):
        await self.registry.list_images(self._repo('helloworld'))

        self.assertEqual(1, self.metrics.counters['list_tags', 'success'])
        self.assertEqual(4, self.metrics.counters['fetch_manifest', 'success'])
        self.assertEqual(1, self.metrics.counters['cancel', 'success'])

    async def test_unqualified_name_matches_library_namespace(self):
        self.assertEqual(self._repo('helloworld'), self._repo('library/helloworld'))

        first = await self.registry.list_images(self._repo('helloworld'))
        second = await self.registry.list_images(self._repo('library/helloworld'))

        self.assertEqual(first, second)
        self.assertEqual(self.factory.remotes[0].list_calls, self.factory.remotes[1].list_calls)

    async def test_empty_repository(self):
        self.assertEqual([], await self.registry.list_images(self._repo('foo/empty')))
        self.assertEqual([], self.remote.fetch_calls)
        self.assertEqual([(0, 0)], self.remote.releases)

    async def test_tag_list_failure(self):
        with self.assertRaises(TagListError) as ctx:
            await self.registry.list_images(self._repo('foo/broken-tags'))

        self.assertIsInstance(ctx.exception.__cause__, aiohttp.ClientConnectionError)
        self.assertEqual([], self.remote.fetch_calls)
        self.assertEqual([(0, 0)], self.remote.releases)
        self.assertEqual(1, self.metrics.counters['list_tags', 'error'])

    async def test_one_manifest_failure_fails_listing(self):
        with self.assertLogs('registry_resolver.registry', 'WARNING') as logs, \
                self.assertRaises(ManifestFetchError) as ctx:
            await self.registry.list_images(self._repo('foo/one-bad'))

        self.assertEqual('bad', ctx.exception.tag)
        self.assertIn('registry-metadata-err', logs.output[0])
        self.assertEqual(1, len(logs.output))

        # every dispatched fetch finished before the remote was released
        self.assertEqual(['bad', 'fast', 'slow', 'slower'], sorted(self.remote.fetch_calls))
        self.assertEqual([(4, 0)], self.remote.releases)

    async def test_first_observed_error_wins(self):
        tags = [
            {'tag': 'late', 'fail': True, 'delay': 0.05},
            {'tag': 'early', 'fail': True, 'delay': 0},
        ]
        with mock.patch.object(FakeRemote, 'extra', {'foo/two-bad': {'tags': tags}}), \
                self.assertLogs('registry_resolver.registry', 'WARNING') as logs, \
                self.assertRaises(ManifestFetchError) as ctx:
            await self.registry.list_images(self._repo('foo/two-bad'))

        self.assertEqual('early', ctx.exception.tag)
        self.assertEqual(2, len(logs.output))
        self.assertEqual([(2, 0)], self.remote.releases)

    async def test_cancelled_fetch_still_reported(self):
        tags = [
            {'tag': 'a', 'cancelled': True},
            {'tag': 'b', 'fail': True, 'delay': 0.01},
        ]
        with mock.patch.object(FakeRemote, 'extra', {'foo/cancelled': {'tags': tags}}), \
                self.assertLogs('registry_resolver.registry', 'WARNING') as logs, \
                self.assertRaises(ManifestFetchError) as ctx:
            await asyncio.wait_for(self.registry.list_images(self._repo('foo/cancelled')), 2)

        self.assertEqual('a', ctx.exception.tag)
        self.assertIsInstance(ctx.exception.__cause__, asyncio.CancelledError)
        self.assertEqual(2, len(logs.output))
        self.assertEqual([(2, 0)], self.remote.releases)

    async def test_outer_cancellation_awaits_fetches(self):
        task = asyncio.ensure_future(self.registry.list_images(self._repo('helloworld')))
        while not self.factory.remotes or len(self.factory.remotes[0].fetch_calls) < 4:
            await asyncio.sleep(0)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertEqual([(4, 0)], self.remote.releases)

    async def test_staggered_fetches_sorted_by_creation_time(self):
        created = datetime.datetime(2020, 1, 1, tzinfo=UTC)
        tags = [
            {
                'tag': f't{i:02d}',
                'digest': f'sha256:{i:064d}',
                'created': (created + datetime.timedelta(hours=i)).isoformat(),
                'delay': (i * 7 % 10) / 200,
            }
            for i in range(50)
        ]
        with mock.patch.object(FakeRemote, 'extra', {'foo/fifty': {'tags': tags}}):
            images = await self.registry.list_images(self._repo('foo/fifty'))

        self.assertEqual(
            [f'registry.test/foo/fifty:t{i:02d}' for i in reversed(range(50))],
            [image.name for image in images],
        )
        self.assertEqual(50, len(self.remote.fetch_calls))
        self.assertEqual([(50, 0)], self.remote.releases)

    async def test_unknown_host(self):
        with self.assertRaises(RemoteUnavailable):
            await self.registry.list_images(Repository('nowhere.test', 'library', 'app'))
        self.assertEqual([], self.factory.remotes)

    async def test_factory_error_propagates_unchanged(self):
        error = RemoteUnavailable('auth failed')
        factory = mock.Mock()
        factory.create_for = mock.AsyncMock(side_effect=error)

        with self.assertRaises(RemoteUnavailable) as ctx:
            await Registry(factory).list_images(self._repo('helloworld'))

        self.assertIs(error, ctx.exception)
        factory.create_for.assert_awaited_once_with('registry.test')


class RegistryGetImageTest(RegistryTest):

    async def test_get_image_twice_yields_equal_images(self):
        repository = self._repo('helloworld')

        first = await self.registry.get_image(repository, '2.0')
        second = await self.registry.get_image(repository, '2.0')

        self.assertEqual(first, second)
        self.assertEqual('registry.test/library/helloworld:2.0', first.name)
        self.assertEqual([[(1, 0)], [(1, 0)]], [remote.releases for remote in self.factory.remotes])

    async def test_get_image_failure_releases_remote(self):
        with self.assertRaises(ManifestFetchError) as ctx:
            await self.registry.get_image(self._repo('foo/one-bad'), 'bad')

        self.assertIsInstance(ctx.exception.__cause__, ValueError)
        self.assertEqual([(1, 0)], self.remote.releases)

    async def test_get_unknown_tag(self):
        with self.assertRaises(ManifestFetchError) as ctx:
            await self.registry.get_image(self._repo('helloworld'), 'missing')

        self.assertEqual('missing', ctx.exception.tag)
        self.assertEqual([(1, 0)], self.remote.releases)


class InstrumentedRemoteTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repository = Repository('registry.test', 'library', 'app')
        self.inner = mock.Mock()
        self.inner.list_tags = mock.AsyncMock(return_value=['a', 'b'])
        self.inner.cancel = mock.AsyncMock()
        self.metrics = mock.Mock(spec=Metrics)
        self.remote = InstrumentedRemote(self.inner, self.metrics)

    async def test_forwards_results(self):
        self.assertEqual(['a', 'b'], await self.remote.list_tags(self.repository))
        self.inner.list_tags.assert_awaited_once_with(self.repository)

        await self.remote.cancel()
        self.inner.cancel.assert_awaited_once_with()

        self.assertEqual(
            [('list_tags', True), ('cancel', True)],
            [call.args[:2] for call in self.metrics.observe.call_args_list],
        )

    async def test_reraises_same_error(self):
        error = ManifestFetchError(self.repository, 'a')
        self.inner.fetch_manifest = mock.AsyncMock(side_effect=error)

        with self.assertRaises(ManifestFetchError) as ctx:
            await self.remote.fetch_manifest(self.repository, 'a')

        self.assertIs(error, ctx.exception)
        operation, success, duration = self.metrics.observe.call_args.args
        self.assertEqual(('fetch_manifest', False), (operation, success))
        self.assertGreaterEqual(duration, 0)

    async def test_metrics_failure_does_not_change_outcome(self):
        self.metrics.observe.side_effect = RuntimeError('sink down')

        with self.assertLogs('registry_resolver.metrics', 'ERROR'):
            self.assertEqual(['a', 'b'], await self.remote.list_tags(self.repository))


class RemoteFactoryTest(unittest.IsolatedAsyncioTestCase):

    async def test_quay_token(self):
        factory = RemoteFactory({'quay.io': _testfile('quay.token')})
        remote = await factory.create_for('quay.io')

        self.assertIsInstance(remote, QuayIORemote)
        self.assertEqual('Bearer test-token', remote.get_client_headers()['Authorization'])

    async def test_docker_basic_auth(self):
        factory = RemoteFactory({'docker.io': _testfile('docker.auth')})
        remote = await factory.create_for('docker.io')

        self.assertIsInstance(remote, DockerIORemote)
        self.assertEqual('Basic dXNlcjpzZWNyZXQ=', remote.get_client_headers()['Authorization'])

    async def test_anonymous(self):
        remote = await RemoteFactory().create_for('quay.io')
        self.assertNotIn('Authorization', remote.get_client_headers())

    async def test_unreadable_credentials(self):
        factory = RemoteFactory({'quay.io': _testfile('missing.token')})
        with self.assertRaises(RemoteUnavailable):
            await factory.create_for('quay.io')

    async def test_unknown_host(self):
        with self.assertRaises(RemoteUnavailable):
            await RemoteFactory().create_for('nowhere.test')

    async def test_cancel_is_idempotent(self):
        remote = await RemoteFactory().create_for('quay.io')
        remote.ensure_client()
        client = remote.client

        await remote.cancel()
        await remote.cancel()

        self.assertTrue(client.closed)
        self.assertIsNone(remote.client)


class QuayIORemoteTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repository = Repository('quay.io', 'foo', 'bar')
        self.remote = QuayIORemote()
        self.remote.client = mock.Mock()

    async def test_fetch_manifest(self):
        self.remote.client.get = mock.AsyncMock(return_value=_response(
            {'tags': [{'name': 'v1', 'manifest_digest': 'sha256:abc', 'start_ts': 1577836800}]}))

        image = await self.remote.fetch_manifest(self.repository, 'v1')

        self.assertEqual(
            Image('quay.io/foo/bar:v1', 'sha256:abc', datetime.datetime(2020, 1, 1, tzinfo=UTC)), image)
        self.remote.client.get.assert_awaited_once_with(
            'https://quay.io/api/v1/repository/foo/bar/tag/',
            params={'onlyActiveTags': 'true', 'specificTag': 'v1'},
        )

    async def test_fetch_manifest_last_modified(self):
        self.remote.client.get = mock.AsyncMock(return_value=_response(
            {'tags': [{'name': 'v1', 'manifest_digest': 'sha256:abc',
                       'last_modified': 'Wed, 01 Jan 2020 00:00:00 -0000'}]}))

        image = await self.remote.fetch_manifest(self.repository, 'v1')

        self.assertEqual(datetime.datetime(2020, 1, 1, tzinfo=UTC), image.created_at)

    async def test_unknown_tag(self):
        self.remote.client.get = mock.AsyncMock(return_value=_response({'tags': []}))

        with self.assertRaises(ManifestFetchError):
            await self.remote.fetch_manifest(self.repository, 'v1')

    async def test_list_tags_pages(self):
        self.remote.client.get = mock.AsyncMock(side_effect=[
            _response({'tags': [{'name': 'a'}, {'name': 'b'}], 'has_additional': True}),
            _response({'tags': [{'name': 'c'}], 'has_additional': False}),
        ])

        self.assertEqual(['a', 'b', 'c'], await self.remote.list_tags(self.repository))
        self.assertEqual(2, self.remote.client.get.await_args.kwargs['params']['page'])

    async def test_http_error_releases_response(self):
        response = _response({})
        response.raise_for_status.side_effect = aiohttp.ClientResponseError(mock.Mock(), (), status=404)
        self.remote.client.get = mock.AsyncMock(return_value=response)

        with self.assertRaises(TagListError) as ctx:
            await self.remote.list_tags(self.repository)

        self.assertEqual(404, ctx.exception.__cause__.status)
        response.release.assert_called_once_with()
        response.json.assert_not_awaited()

    async def test_transport_error(self):
        self.remote.client.get = mock.AsyncMock(side_effect=asyncio.TimeoutError())

        with self.assertRaises(TagListError) as ctx:
            await self.remote.list_tags(self.repository)
        self.assertIsInstance(ctx.exception.__cause__, asyncio.TimeoutError)


class DockerIORemoteTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.repository = Repository('docker.io', 'library', 'helloworld')
        self.remote = DockerIORemote()
        self.remote.client = mock.Mock()

    async def test_fetch_manifest(self):
        self.remote.client.get = mock.AsyncMock(side_effect=[
            _response({'token': 'pull-token'}),
            _response({'mediaType': MANIFEST_V2, 'config': {'digest': 'sha256:cfg'}},
                      headers={'Docker-Content-Digest': 'sha256:man'}),
            _response({'created': '2020-01-01T00:00:00.123456789Z'}),
        ])

        image = await self.remote.fetch_manifest(self.repository, '1.0')

        self.assertEqual(
            Image('docker.io/library/helloworld:1.0', 'sha256:man',
                  datetime.datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=UTC)),
            image,
        )
        blob_call = self.remote.client.get.await_args_list[2]
        self.assertEqual(('https://index.docker.io/v2/library/helloworld/blobs/sha256:cfg',), blob_call.args)
        self.assertEqual('Bearer pull-token', blob_call.kwargs['headers']['Authorization'])

    def test_parse_created_short_fractions(self):
        self.assertEqual(datetime.datetime(2020, 1, 1, 0, 0, 0, 120000, tzinfo=UTC),
                         parse_created('2020-01-01T00:00:00.12Z'))
        self.assertEqual(datetime.datetime(2020, 1, 1, 0, 0, 0, 123400, tzinfo=UTC),
                         parse_created('2020-01-01T00:00:00.1234Z'))
        self.assertEqual(datetime.datetime(2020, 1, 1, 0, 0, 0, tzinfo=UTC),
                         parse_created('2020-01-01T00:00:00Z'))
        self.assertIsNone(parse_created(None))

    async def test_fetch_manifest_list_picks_linux_amd64(self):
        manifest_list = {
            'mediaType': MANIFEST_LIST_V2,
            'manifests': [
                {'digest': 'sha256:arm', 'platform': {'os': 'linux', 'architecture': 'arm64'}},
                {'digest': 'sha256:amd', 'platform': {'os': 'linux', 'architecture': 'amd64'}},
            ],
        }
        self.remote.client.get = mock.AsyncMock(side_effect=[
            _response({'token': 'pull-token'}),
            _response(manifest_list, headers={'Docker-Content-Digest': 'sha256:list'}),
            _response({'mediaType': MANIFEST_V2, 'config': {'digest': 'sha256:cfg'}}),
            _response({}),
        ])

        image = await self.remote.fetch_manifest(self.repository, '1.0')

        self.assertEqual(Image('docker.io/library/helloworld:1.0', 'sha256:list', None), image)
        platform_call = self.remote.client.get.await_args_list[2]
        self.assertEqual(('https://index.docker.io/v2/library/helloworld/manifests/sha256:amd',),
                         platform_call.args)

    async def test_token_cached_per_repository(self):
        self.remote.client.get = mock.AsyncMock(side_effect=[
            _response({'token': 'pull-token'}),
            _response({'tags': ['1.0']}),
            _response({'tags': ['1.0', '2.0']}),
        ])

        await self.remote.list_tags(self.repository)
        self.assertEqual(['1.0', '2.0'], await self.remote.list_tags(self.repository))
        self.assertEqual(3, self.remote.client.get.await_count)

    async def test_authentication_failure(self):
        self.remote.client.get = mock.AsyncMock(return_value=_response({}))

        with self.assertRaises(RemoteUnavailable):
            await self.remote.list_tags(self.repository)

    async def test_missing_digest(self):
        self.remote.client.get = mock.AsyncMock(side_effect=[
            _response({'token': 'pull-token'}),
            _response({'mediaType': MANIFEST_V2, 'config': {'digest': 'sha256:cfg'}}),
        ])

        with self.assertRaises(ManifestFetchError):
            await self.remote.fetch_manifest(self.repository, '1.0')


class ConfigTest(unittest.TestCase):

    def test_defaults(self):
        config = load_config()
        self.assertEqual(NameDefaults('docker.io', 'library'), config.defaults)
        self.assertEqual({}, config.auth)
        self.assertEqual('INFO', config.log_level)

    def test_config_file(self):
        config = load_config(_testfile('config.yaml'))
        self.assertEqual(NameDefaults('registry.test', 'library'), config.defaults)
        self.assertEqual({'quay.io': _testfile('quay.token')}, config.auth)
        self.assertEqual('DEBUG', config.log_level)

    def test_arguments_override_file(self):
        args = arg_parser.parse_args(
            ['--quay-token-file', '/tmp/quay', '--default-namespace', 'foo', 'list', 'app'])
        config = apply_arguments(load_config(_testfile('config.yaml')), args)

        self.assertEqual(NameDefaults('registry.test', 'foo'), config.defaults)
        self.assertEqual({'quay.io': '/tmp/quay'}, config.auth)
        self.assertEqual('DEBUG', config.log_level)

    def test_log_level_names_and_numbers(self):
        self.assertEqual('WARNING', check_log_level('warning'))
        self.assertEqual('DEBUG', check_log_level(10))
        for value in ('verbose', 15, None):
            with self.subTest(value=value), self.assertRaises(ConfigError):
                check_log_level(value)

    def test_invalid_log_level(self):
        with self.assertRaises(ConfigError):
            load_config(_testfile('bad_level.yaml'))

        args = arg_parser.parse_args(['--log-level', 'verbose', 'list', 'app'])
        with self.assertRaises(ConfigError):
            apply_arguments(load_config(), args)

    def test_missing_config_file(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(_testfile('missing.yaml'))
        self.assertIsInstance(ctx.exception.__cause__, FileNotFoundError)


class CommandLineTest(unittest.TestCase):

    def _main(self, *argv):
        with mock.patch('sys.stdout', new_callable=io.StringIO) as out:
            code = main(['--config', _testfile('config.yaml')] + list(argv))
        return code, out.getvalue()

    def test_list(self):
        code, output = self._main('list', 'helloworld')

        self.assertEqual(0, code)
        lines = output.splitlines()
        self.assertEqual(4, len(lines))
        self.assertEqual(
            'registry.test/library/helloworld:nightly '
            'sha256:3333333333333333333333333333333333333333333333333333333333333333 -',
            lines[0],
        )

    def test_get_json(self):
        code, output = self._main('--json', 'get', 'helloworld:2.0')

        self.assertEqual(0, code)
        self.assertEqual(
            [{'name': 'registry.test/library/helloworld:2.0',
              'digest': 'sha256:2222222222222222222222222222222222222222222222222222222222222222',
              'created_at': '2021-06-01T12:30:00+00:00'}],
            json.loads(output),
        )

    def test_errors_exit_non_zero(self):
        self.assertEqual(1, self._main('get', 'helloworld')[0])
        self.assertEqual(1, self._main('list', 'nowhere.test/foo/bar')[0])
        self.assertEqual(1, self._main('list', 'foo/broken-tags')[0])

    def test_configuration_errors_exit_non_zero(self):
        self.assertEqual(1, self._main('--log-level', 'verbose', 'list', 'helloworld')[0])
        self.assertEqual(1, self._main('--config', _testfile('bad_level.yaml'), 'list', 'helloworld')[0])
        self.assertEqual(1, self._main('--config', _testfile('missing.yaml'), 'list', 'helloworld')[0])
