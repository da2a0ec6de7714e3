from typing import List

from typing_extensions import NotRequired, TypedDict


class Platform(TypedDict):
    """Typed dict used to store platform data of a manifest list entry."""

    architecture: str
    os: str
    variant: NotRequired[str]


class ManifestListEntry(TypedDict):
    """Typed dict used to store a manifest descriptor of a manifest list."""

    mediaType: str
    size: int
    digest: str
    platform: Platform


class ManifestList(TypedDict):
    """Typed dict used to store manifest list data."""

    schemaVersion: int
    mediaType: str
    manifests: List[ManifestListEntry]
