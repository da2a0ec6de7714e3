from .exceptions import (
    BuildCancelled,
    BuildError,
    CredentialEncodingError,
    CredentialError,
    CredentialMalformed,
    CredentialNotFound,
    DigestComputationError,
    DuplicatePlatformError,
    InvalidBuildError,
    ManifestFetchError,
    PublishError,
    ReferenceParseError,
    RegistryError,
)
from .credentials import load_auth_file, resolve_credential
from .digest import manifest_digest, serialize_manifest_list
from .index_builder import ManifestIndexBuilder, build_and_publish
from .models import AuthCredential, SourceImage
from .registry_client import RegistryClient

__all__ = [
    "AuthCredential",
    "BuildCancelled",
    "BuildError",
    "CredentialEncodingError",
    "CredentialError",
    "CredentialMalformed",
    "CredentialNotFound",
    "DigestComputationError",
    "DuplicatePlatformError",
    "InvalidBuildError",
    "ManifestFetchError",
    "ManifestIndexBuilder",
    "PublishError",
    "ReferenceParseError",
    "RegistryClient",
    "RegistryError",
    "SourceImage",
    "build_and_publish",
    "load_auth_file",
    "manifest_digest",
    "resolve_credential",
    "serialize_manifest_list",
]
