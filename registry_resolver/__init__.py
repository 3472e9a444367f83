from registry_resolver.errors import (
    ConfigError,
    InvalidReference,
    ManifestFetchError,
    RegistryError,
    RemoteUnavailable,
    TagListError,
)
from registry_resolver.images import Image, sort_images
from registry_resolver.metrics import InstrumentedRemote, LoggingMetrics, Metrics, NoopMetrics
from registry_resolver.names import NameDefaults, Repository, canonicalize, parse_reference
from registry_resolver.registry import Registry


__all__ = [
    'ConfigError', 'Image', 'InstrumentedRemote', 'InvalidReference', 'LoggingMetrics', 'ManifestFetchError',
    'Metrics', 'NameDefaults', 'NoopMetrics', 'Registry', 'RegistryError', 'RemoteUnavailable',
    'Repository', 'TagListError', 'canonicalize', 'parse_reference', 'sort_images',
]
