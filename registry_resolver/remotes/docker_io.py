import base64
import datetime
import logging
import urllib.parse

from registry_resolver.errors import RemoteUnavailable
from registry_resolver.images import Image
from registry_resolver.remotes import base

logger = logging.getLogger(__name__)

MANIFEST_V2 = 'application/vnd.docker.distribution.manifest.v2+json'
MANIFEST_LIST_V2 = 'application/vnd.docker.distribution.manifest.list.v2+json'
OCI_MANIFEST = 'application/vnd.oci.image.manifest.v1+json'
OCI_INDEX = 'application/vnd.oci.image.index.v1+json'

INDEX_TYPES = (MANIFEST_LIST_V2, OCI_INDEX)


def parse_created(value):
    """Parse an RFC 3339 `created` value from an image config, if present."""
    if not value:
        return None
    # fromisoformat before 3.11 needs '+00:00' and exactly six fraction digits
    value = value.replace('Z', '+00:00')
    head, dot, tail = value.partition('.')
    if dot:
        digits = len(tail) - len(tail.lstrip('0123456789'))
        tail = tail[:min(digits, 6)].ljust(6, '0') + tail[digits:]
    created = datetime.datetime.fromisoformat(head + dot + tail)
    if created.tzinfo is None:
        created = created.replace(tzinfo=datetime.timezone.utc)
    return created


def pick_platform(manifests):
    for entry in manifests:
        platform = entry.get('platform', {})
        if platform.get('os') == 'linux' and platform.get('architecture') == 'amd64':
            return entry
    return manifests[0]


class DockerIORemote(base.Remote):

    registry_host = 'docker.io'
    api_base_uri = f'https://index.{registry_host}'
    auth_url = 'https://auth.docker.io'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.repository_tokens = {}

        if self.token:
            # --docker-auth-file must contain <username>:<password>
            self._auth_str = base64.b64encode(self.token.encode()).decode()

    def login_uri(self, repository) -> str:
        query = urllib.parse.urlencode(
            {
                'scope': f'repository:{repository.path}:pull',
                'service': 'registry.docker.io',
            },
        )
        return f'{self.auth_url}/token?{query}'

    async def ensure_temporary_token(self, repository) -> str:
        """Pull token for one repository, cached for the life of this remote."""
        if repository.path not in self.repository_tokens:
            try:
                _, response_data = await self.get_json(self.login_uri(repository))
            except base.TRANSPORT_ERRORS as exc:
                raise RemoteUnavailable(f'Can not authenticate with {self.registry_host}') from exc
            temp_token = response_data.get('token') or response_data.get('access_token')
            if not temp_token:
                raise RemoteUnavailable(f'Can not authenticate with {self.registry_host}')
            self.repository_tokens[repository.path] = temp_token
        return self.repository_tokens[repository.path]

    async def registry_get(self, repository, path, accept=None):
        token = await self.ensure_temporary_token(repository)
        headers = {'Authorization': f'Bearer {token}'}
        if accept:
            headers['Accept'] = accept
        return await self.get_json(f'{self.api_base_uri}{path}', headers=headers)

    async def _list_tags(self, repository):
        tags = []
        path = f'/v2/{repository.path}/tags/list'
        while path:
            response, page = await self.registry_get(repository, path)
            tags.extend(page.get('tags') or [])
            next_link = response.links.get('next')
            path = str(next_link['url']) if next_link else None
        return tags

    async def _fetch_manifest(self, repository, tag):
        """Resolve digest and creation time using the registry v2 API."""
        accept = ', '.join((MANIFEST_V2, OCI_MANIFEST) + INDEX_TYPES)
        response, manifest = await self.registry_get(
            repository, f'/v2/{repository.path}/manifests/{tag}', accept=accept)

        digest = response.headers.get('Docker-Content-Digest')
        if not digest:
            raise ValueError('Can not retrieve docker image digest')

        if manifest.get('mediaType') in INDEX_TYPES or 'manifests' in manifest:
            entry = pick_platform(manifest['manifests'])
            _, manifest = await self.registry_get(
                repository, f'/v2/{repository.path}/manifests/{entry["digest"]}',
                accept=', '.join((MANIFEST_V2, OCI_MANIFEST)))

        created_at = None
        config = manifest.get('config')
        if config:
            _, blob = await self.registry_get(repository, f'/v2/{repository.path}/blobs/{config["digest"]}')
            created_at = parse_created(blob.get('created'))

        return Image.for_tag(repository, tag, digest, created_at)

    def get_client_headers(self):
        headers = super().get_client_headers()
        if self.token:
            headers.update({'Authorization': f'Basic {self._auth_str}'})
        return headers
