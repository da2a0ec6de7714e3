from typing import Optional


class CredentialError(Exception):
    """Occurs when registry credentials cannot be resolved."""


class CredentialNotFound(CredentialError):
    """Occurs when the auth store has no entry for a registry."""


class CredentialMalformed(CredentialError):
    """Occurs when an auth entry (or the auth file itself) has an unexpected format."""


class CredentialEncodingError(CredentialError):
    """Occurs when an auth entry is not valid base64."""


class RegistryError(Exception):
    """Occurs when a registry request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        """
        Initialize.

        Args:
            message (str):
                Error description.
            status_code (int):
                HTTP status code of the failed response, if there was one.
        """
        super().__init__(message)
        self.status_code = status_code


class RegistryAuthError(RegistryError):
    """Occurs when registry authentication encounters an issue."""


class ManifestNotFoundError(RegistryError):
    """Occurs when a manifest doesn't exist in the registry."""


class PermissionDeniedError(RegistryError):
    """Occurs when the registry refuses the operation for the given credentials."""


class QuotaExceededError(RegistryError):
    """Occurs when the registry rejects a request due to quota or rate limits."""


class BuildError(Exception):
    """Base class of every failure of a manifest index build."""


class ReferenceParseError(BuildError, ValueError):
    """Occurs when an image reference string is malformed."""


class DuplicatePlatformError(BuildError, ValueError):
    """Occurs when two source images claim the same platform."""


class InvalidBuildError(BuildError, ValueError):
    """Occurs when build parameters are unusable, e.g. no source images."""


class ManifestFetchError(BuildError):
    """Occurs when a source manifest cannot be read from the registry."""

    def __init__(self, reference: str, message: str) -> None:
        """
        Initialize.

        Args:
            reference (str):
                Image reference whose manifest couldn't be fetched.
            message (str):
                Error description.
        """
        super().__init__("Unable to fetch manifest of '{0}': {1}".format(reference, message))
        self.reference = reference


class DigestComputationError(BuildError):
    """Occurs when manifest bytes are not a structurally valid manifest."""


class PublishError(BuildError):
    """Occurs when the manifest index cannot be written to the registry."""

    def __init__(self, reference: str, message: str) -> None:
        """
        Initialize.

        Args:
            reference (str):
                Destination image reference.
            message (str):
                Error description.
        """
        super().__init__(
            "Unable to publish manifest index to '{0}': {1}".format(reference, message)
        )
        self.reference = reference


class BuildCancelled(BuildError):
    """Occurs when a build is aborted by the caller."""
