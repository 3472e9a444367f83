"""Registry domain errors."""


class RegistryError(Exception):
    """Base class for everything the resolver raises on purpose."""


class InvalidReference(RegistryError, ValueError):
    """A textual image reference can not be turned into a Repository."""


class ConfigError(RegistryError):
    """The resolver configuration can not be loaded or is invalid."""


class RemoteUnavailable(RegistryError):
    """No usable remote could be created for a registry host."""


class TagListError(RegistryError):

    def __init__(self, repository, message='Can not list tags'):
        super().__init__(f'{message} for {repository}')
        self.repository = repository


class ManifestFetchError(RegistryError):

    def __init__(self, repository, tag, message='Can not fetch manifest'):
        super().__init__(f'{message} for {repository}:{tag}')
        self.repository = repository
        self.tag = tag


__all__ = ['RegistryError', 'ConfigError', 'InvalidReference', 'RemoteUnavailable', 'TagListError', 'ManifestFetchError']
