import datetime
import email.utils

from registry_resolver.errors import ManifestFetchError
from registry_resolver.images import Image
from registry_resolver.remotes import base


def quay_repository_url(repository) -> str:
    return f'https://quay.io/api/v1/repository/{repository.path}'


def tag_created_at(tag_metadata):
    """Creation time of a Quay tag, from `start_ts` or `last_modified`."""
    if tag_metadata.get('start_ts') is not None:
        return datetime.datetime.fromtimestamp(tag_metadata['start_ts'], tz=datetime.timezone.utc)
    if tag_metadata.get('last_modified'):
        created = email.utils.parsedate_to_datetime(tag_metadata['last_modified'])
        # Quay sends '-0000', which parses as a naive datetime
        if created.tzinfo is None:
            created = created.replace(tzinfo=datetime.timezone.utc)
        return created
    return None


class QuayIORemote(base.Remote):

    registry_host = 'quay.io'

    async def _list_tags(self, repository):
        tags = []
        page = 1
        while True:
            _, data = await self.get_json(
                f'{quay_repository_url(repository)}/tag/',
                params={'onlyActiveTags': 'true', 'page': page},
            )
            tags.extend(tag['name'] for tag in data.get('tags', []))
            if not data.get('has_additional'):
                return tags
            page += 1

    async def _fetch_manifest(self, repository, tag):
        """Resolve single image digest using Quay API."""
        _, data = await self.get_json(
            f'{quay_repository_url(repository)}/tag/',
            params={'onlyActiveTags': 'true', 'specificTag': tag},
        )

        tags = data.get('tags', [])
        if not tags:
            raise ManifestFetchError(repository, tag, 'Unknown image')

        tag_metadata = tags[0]
        if not tag_metadata.get('manifest_digest'):
            raise ValueError('Unknown Quay response format')

        return Image.for_tag(repository, tag, tag_metadata['manifest_digest'], tag_created_at(tag_metadata))

    def get_client_headers(self):
        headers = super().get_client_headers()
        if self.token:
            headers.update({'Authorization': f'Bearer {self.token}'})
        return headers
