"""Resolver configuration: name defaults, credentials and logging."""
import collections
import logging
import os

import yaml

from registry_resolver.errors import ConfigError
from registry_resolver.names import NameDefaults

logger = logging.getLogger(__name__)

Config = collections.namedtuple('Config', ['defaults', 'auth', 'log_level'])


def check_log_level(value) -> str:
    """Normalize a level name or number to a logging level name."""
    level = logging.getLevelName(value) if isinstance(value, int) else str(value).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigError(f'Unknown log level: {value}')
    return level


def load_config(path=None) -> Config:
    """Read a YAML config file; missing keys take built-in defaults.

    Recognized keys: default_host, default_namespace, log_level and auth
    (a mapping of registry host to credentials file).
    """
    data = {}
    if path:
        try:
            with open(path) as fl:
                data = yaml.load(fl, Loader=yaml.SafeLoader) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f'Can not load config file {path}: {exc}') from exc
        if not isinstance(data, dict) or not isinstance(data.get('auth') or {}, dict):
            raise ConfigError(f'Config file {path} must be a mapping')
        logger.info('Loaded config file %s', path)

    # credentials paths are relative to the config file
    auth = {
        host: os.path.join(os.path.dirname(path), credentials_file)
        for host, credentials_file in (data.get('auth') or {}).items()
    }

    base = NameDefaults()
    return Config(
        defaults=NameDefaults(
            host=data.get('default_host', base.host),
            namespace=data.get('default_namespace', base.namespace),
        ),
        auth=auth,
        log_level=check_log_level(data.get('log_level', 'INFO')),
    )


def apply_arguments(config: Config, args) -> Config:
    """Let command line options override file values."""
    auth = dict(config.auth)
    if args.docker_auth_file:
        auth['docker.io'] = args.docker_auth_file
    if args.quay_token_file:
        auth['quay.io'] = args.quay_token_file

    return Config(
        defaults=NameDefaults(
            host=args.default_host or config.defaults.host,
            namespace=args.default_namespace or config.defaults.namespace,
        ),
        auth=auth,
        log_level=check_log_level(args.log_level or config.log_level),
    )


__all__ = ['Config', 'check_log_level', 'load_config', 'apply_arguments']
