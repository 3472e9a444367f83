"""Repository names and their canonical form."""
import collections
import re

from registry_resolver.errors import InvalidReference


NameDefaults = collections.namedtuple('NameDefaults', ['host', 'namespace'], defaults=('docker.io', 'library'))

_component_re = re.compile(r'^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$')


class Repository(collections.namedtuple('Repository', ['host', 'namespace', 'name'])):
    """Canonical host/namespace/name triple, value-equal on all three."""

    __slots__ = ()

    @property
    def path(self) -> str:
        return f'{self.namespace}/{self.name}'

    def __str__(self):
        return f'{self.host}/{self.path}'


def _looks_like_host(component: str) -> bool:
    return '.' in component or ':' in component or component == 'localhost'


def canonicalize(reference: str, defaults: NameDefaults) -> Repository:
    """Map a repository reference to its canonical Repository.

    Omitted elements take the given defaults:

        helloworld             -> docker.io/library/helloworld
        foo/helloworld         -> docker.io/foo/helloworld
        quay.io/foo/helloworld -> quay.io/foo/helloworld
    """
    if not reference:
        raise InvalidReference('Empty repository reference')

    parts = reference.split('/')

    if len(parts) > 1 and _looks_like_host(parts[0]):
        host, parts = parts[0], parts[1:]
    else:
        host = defaults.host

    if len(parts) == 1:
        namespace, name = defaults.namespace, parts[0]
    else:
        namespace, name = '/'.join(parts[:-1]), parts[-1]

    for component in namespace.split('/') + [name]:
        if not _component_re.match(component):
            raise InvalidReference(f'Invalid repository reference: {reference}')

    return Repository(host.lower(), namespace, name)


def parse_reference(reference: str, defaults: NameDefaults):
    """Split `reference` into a canonical Repository and an optional tag."""
    if '@' in reference:
        raise InvalidReference(f'Digest references are not supported: {reference}')

    repo, sep, tag = reference.rpartition(':')
    if not sep or '/' in tag:
        repo, tag = reference, None
    elif not tag:
        raise InvalidReference(f'Empty tag in reference: {reference}')

    return canonicalize(repo, defaults), tag


__all__ = ['NameDefaults', 'Repository', 'canonicalize', 'parse_reference']
