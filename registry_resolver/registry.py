"""Domain level access to container registries."""
import asyncio
import logging
from typing import List

from registry_resolver.errors import ManifestFetchError
from registry_resolver.images import Image, sort_images
from registry_resolver.metrics import InstrumentedRemote, LoggingMetrics
from registry_resolver.names import Repository

logger = logging.getLogger(__name__)


class Registry:
    """Resolves repositories and tags into Images through per-call Remotes."""

    def __init__(self, factory, metrics=None, log=None):
        self.factory = factory
        self.metrics = metrics if metrics is not None else LoggingMetrics()
        self.logger = log or logger

    async def new_remote(self, repository: Repository):
        remote = await self.factory.create_for(repository.host)
        return InstrumentedRemote(remote, self.metrics)

    async def list_images(self, repository: Repository) -> List[Image]:
        """All images of `repository`, newest first.

        Fails as a whole if any tag can not be resolved; the error raised is
        the first one observed while gathering.
        """
        remote = await self.new_remote(repository)

        try:
            tags = await remote.list_tags(repository)
        except BaseException:
            await remote.cancel()
            raise

        return await self.tags_to_images(remote, repository, tags)

    async def get_image(self, repository: Repository, tag: str) -> Image:
        remote = await self.new_remote(repository)
        try:
            return await remote.fetch_manifest(repository, tag)
        finally:
            await remote.cancel()

    async def tags_to_images(self, remote, repository, tags) -> List[Image]:
        fetched = asyncio.Queue(maxsize=len(tags))

        async def fetch(tag):
            try:
                image, error = await remote.fetch_manifest(repository, tag), None
            except asyncio.CancelledError as exc:
                # the collector still needs exactly one entry per tag
                error = ManifestFetchError(repository, tag, 'Manifest fetch cancelled')
                error.__cause__ = exc
                fetched.put_nowait((tag, None, error))
                raise
            except Exception as exc:
                image, error = None, exc
            fetched.put_nowait((tag, image, error))

        pending = [asyncio.ensure_future(fetch(tag)) for tag in tags]
        images, first_error = [], None

        # one way or another, every dispatched fetch is awaited before release
        try:
            for _ in pending:
                tag, image, error = await fetched.get()
                if error is not None:
                    self.logger.warning('registry-metadata-err tag=%s: %s', tag, error)
                    if first_error is None:
                        first_error = error
                else:
                    images.append(image)
        finally:
            for task in pending:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            await remote.cancel()

        if first_error is not None:
            raise first_error
        return sort_images(images)


__all__ = ['Registry']
