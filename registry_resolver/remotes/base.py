import abc
import asyncio
import logging
import os
from typing import List

import aiohttp

from registry_resolver.errors import ManifestFetchError, RemoteUnavailable, TagListError
from registry_resolver.images import Image
from registry_resolver.names import Repository

logger = logging.getLogger(__name__)

# Upper bound for any single call against a registry, in seconds.
REQUEST_TIMEOUT = 10

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, LookupError, ValueError)


class RemoteMeta(abc.ABCMeta):

    remotes = {}

    def __new__(mcs, *args, **kwargs):
        cls = super(RemoteMeta, mcs).__new__(mcs, *args, **kwargs)
        host = getattr(cls, 'registry_host', None)
        if host and not isinstance(host, property):
            mcs.remotes[host] = cls
        return cls


class Remote(metaclass=RemoteMeta):
    """An open session against one registry host.

    Public operations translate transport and payload errors into registry
    errors. Subclasses implement the `_list_tags` and `_fetch_manifest` hooks.
    """

    def __init__(self, credentials_file=None):
        self.client = None
        self.token = None

        if credentials_file:
            try:
                with open(credentials_file, 'r') as fl:
                    self.token = fl.read().strip()
            except OSError as exc:
                raise RemoteUnavailable(f'Can not read credentials for {self.registry_host}') from exc
            logger.info('Loaded credentials file %s', os.path.basename(credentials_file))

    @property
    @abc.abstractmethod
    def registry_host(self) -> str:
        """A registry host name, as it appears in repository references."""
        raise NotImplementedError()

    @abc.abstractmethod
    async def _list_tags(self, repository: Repository) -> List[str]:
        raise NotImplementedError()

    @abc.abstractmethod
    async def _fetch_manifest(self, repository: Repository, tag: str) -> Image:
        raise NotImplementedError()

    def ensure_client(self):
        """Create HTTP client for interacting with the registry."""
        if self.client is None:
            self.client = aiohttp.ClientSession(
                headers=self.get_client_headers(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            )

    def get_client_headers(self):
        """Retrieve headers for HTTP client authentication."""
        return {
            'User-Agent': 'registry-resolver',
        }

    async def get_json(self, url, **kwargs):
        self.ensure_client()
        response = await self.client.get(url, **kwargs)
        try:
            response.raise_for_status()
        except aiohttp.ClientResponseError:
            response.release()
            raise
        return response, await response.json(content_type=None)

    async def list_tags(self, repository: Repository) -> List[str]:
        try:
            return await self._list_tags(repository)
        except TRANSPORT_ERRORS as exc:
            raise TagListError(repository, f'Can not list tags ({exc!r})') from exc

    async def fetch_manifest(self, repository: Repository, tag: str) -> Image:
        try:
            return await self._fetch_manifest(repository, tag)
        except TRANSPORT_ERRORS as exc:
            raise ManifestFetchError(repository, tag, f'Can not fetch manifest ({exc!r})') from exc

    async def cancel(self):
        """Release the HTTP session. Safe to call more than once."""
        client, self.client = self.client, None
        if client is not None:
            await client.close()
