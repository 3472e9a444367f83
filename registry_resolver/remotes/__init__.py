import logging

from registry_resolver.errors import RemoteUnavailable
from registry_resolver.remotes.base import Remote, RemoteMeta

logger = logging.getLogger(__name__)


class RemoteFactory:
    """Creates one Remote per resolution request for a registry host.

    `auth` maps a registry host to the credentials file its Remote should use.
    """

    def __init__(self, auth=None):
        self.auth = dict(auth or {})

    async def create_for(self, host: str) -> Remote:
        remote_cls = RemoteMeta.remotes.get(host)
        if remote_cls is None:
            raise RemoteUnavailable(f'Unknown Docker registry: {host}')
        logger.debug('Creating %s for %s', remote_cls.__name__, host)
        return remote_cls(self.auth.get(host))


def init_registries():
    # Import all known remote implementations so they register themselves
    from registry_resolver.remotes.docker_io import DockerIORemote
    from registry_resolver.remotes.quay_io import QuayIORemote


__all__ = ['Remote', 'RemoteFactory', 'init_registries']
