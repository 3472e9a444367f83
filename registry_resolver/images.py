import collections
import datetime
from typing import Iterable, List, Optional


class Image(collections.namedtuple('Image', ['name', 'digest', 'created_at'])):
    """One resolved tag: full name, manifest digest and optional creation time."""

    __slots__ = ()

    @classmethod
    def for_tag(cls, repository, tag: str, digest: str,
                created_at: Optional[datetime.datetime] = None) -> 'Image':
        return cls(f'{repository}:{tag}', digest, created_at)

    def __str__(self):
        return self.name


def sort_key(image: Image):
    """Newest first; images without a timestamp ahead of all others.

    Equal timestamps, and images that both lack one, fall back to name order.
    """
    if image.created_at is None:
        return 0, 0.0, image.name
    return 1, -image.created_at.timestamp(), image.name


def sort_images(images: Iterable[Image]) -> List[Image]:
    return sorted(images, key=sort_key)


__all__ = ['Image', 'sort_images', 'sort_key']
