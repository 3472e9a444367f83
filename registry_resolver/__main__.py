import asyncio
import json
import logging
import sys

import registry_resolver.arguments
import registry_resolver.config
import registry_resolver.names
import registry_resolver.remotes
from registry_resolver.errors import InvalidReference, RegistryError
from registry_resolver.registry import Registry

logger = logging.getLogger('registry_resolver')


def format_image(image) -> str:
    created = image.created_at.isoformat() if image.created_at else '-'
    return f'{image.name} {image.digest} {created}'


def image_dict(image) -> dict:
    return {
        'name': image.name,
        'digest': image.digest,
        'created_at': image.created_at.isoformat() if image.created_at else None,
    }


async def run(args, config) -> list:
    registry_resolver.remotes.init_registries()
    registry = Registry(registry_resolver.remotes.RemoteFactory(config.auth))

    if args.command == 'list':
        repository = registry_resolver.names.canonicalize(args.repository, config.defaults)
        return await registry.list_images(repository)

    repository, tag = registry_resolver.names.parse_reference(args.reference, config.defaults)
    if tag is None:
        raise InvalidReference(f'A tag is required: {args.reference}')
    return [await registry.get_image(repository, tag)]


def main(argv=None):
    args = registry_resolver.arguments.arg_parser.parse_args(argv)

    try:
        config = registry_resolver.config.apply_arguments(
            registry_resolver.config.load_config(args.config), args)
    except RegistryError as exc:
        logger.error('%s', exc)
        return 1

    logging.basicConfig(level=config.log_level)

    try:
        images = asyncio.run(run(args, config))
    except RegistryError as exc:
        logger.error('%s', exc)
        return 1

    if args.json:
        print(json.dumps([image_dict(image) for image in images], indent=2))
    else:
        for image in images:
            print(format_image(image))
    return 0


if __name__ == '__main__':
    sys.exit(main())
