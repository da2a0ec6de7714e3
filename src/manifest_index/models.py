import dataclasses
from typing import Optional, Tuple

from .exceptions import ReferenceParseError
from .types import Platform


@dataclasses.dataclass(frozen=True)
class SourceImage:
    """Single-platform image which should be referenced by a manifest list."""

    reference: str
    architecture: str
    os: str
    variant: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate that the image is fully described."""
        if not self.reference or not self.reference.strip():
            raise ReferenceParseError("Source image reference must not be empty")
        if not self.architecture or not self.os:
            raise ValueError(
                "Architecture and OS must be set for source image '{0}'".format(self.reference)
            )
        if self.variant == "":
            raise ValueError("Variant of source image '{0}' is empty".format(self.reference))

    @property
    def platform_key(self) -> Tuple[str, str, Optional[str]]:
        """Tuple identifying the platform of the image."""
        return (self.architecture, self.os, self.variant)

    @property
    def platform(self) -> Platform:
        """Platform block as it appears in a manifest list."""
        platform: Platform = {"architecture": self.architecture, "os": self.os}
        if self.variant:
            platform["variant"] = self.variant
        return platform

    @classmethod
    def from_string(cls, value: str) -> "SourceImage":
        """
        Create a source image from the '<reference>=<os>/<arch>[/<variant>]' notation.

        Args:
            value (str):
                Source image description, e.g. 'quay.io/ns/app:arm=linux/arm64/v8'.
        Returns (SourceImage):
            Parsed source image.
        Raises:
            ReferenceParseError:
                If the value doesn't follow the expected notation.
        """
        reference, sep, platform = value.rpartition("=")
        if not sep or not reference:
            raise ReferenceParseError(
                "Source image '{0}' must have the format "
                "'<reference>=<os>/<arch>[/<variant>]'".format(value)
            )
        parts = platform.split("/")
        if len(parts) not in (2, 3) or not all(parts):
            raise ReferenceParseError(
                "Platform '{0}' of source image '{1}' must have the format "
                "'<os>/<arch>[/<variant>]'".format(platform, reference)
            )
        variant = parts[2] if len(parts) == 3 else None
        return cls(reference=reference, architecture=parts[1], os=parts[0], variant=variant)


@dataclasses.dataclass(frozen=True)
class AuthCredential:
    """Username and password of one registry."""

    username: str
    password: str = dataclasses.field(repr=False)
