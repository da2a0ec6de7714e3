import json
import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence

from .digest import manifest_digest, serialize_manifest_list
from .exceptions import (
    BuildCancelled,
    DigestComputationError,
    DuplicatePlatformError,
    InvalidBuildError,
    ManifestFetchError,
    PublishError,
    ReferenceParseError,
    RegistryError,
)
from .models import AuthCredential, SourceImage
from .registry_client import RegistryClient
from .types import ManifestList, ManifestListEntry
from .utils.misc import log_step, parse_image_reference, run_in_parallel

LOG = logging.getLogger("manifest_index")


class ManifestIndexBuilder:
    """Class containing logic for assembling a manifest list out of single-platform images."""

    MANIFEST_TYPE = RegistryClient.MANIFEST_OCI_V2S2_TYPE
    INDEX_TYPE = RegistryClient.MANIFEST_OCI_LIST_TYPE
    SCHEMA_VERSION = 2

    def __init__(
        self,
        source_images: Iterable[SourceImage],
        dest_image: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        concurrency: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Initialize.

        Args:
            source_images ([SourceImage]):
                Images to reference in the manifest list. Their order is the order of the list.
            dest_image (str):
                Address of the image the manifest list will be uploaded to.
            username (str):
                Registry username used for both reading and writing.
            password (str):
                Registry password used for both reading and writing.
            concurrency (int):
                Number of manifests fetched at the same time.
            cancel_event (threading.Event):
                When set, the build is aborted before the next registry request.
        Raises:
            ReferenceParseError:
                If a reference is empty or malformed.
            DuplicatePlatformError:
                If two source images have the same platform.
            InvalidBuildError:
                If there are no source images or concurrency is below 1.
        """
        images = list(source_images)
        validate_source_images(images)
        if not dest_image:
            raise ReferenceParseError("Destination reference must not be empty")
        parse_image_reference(dest_image)
        if concurrency < 1:
            raise InvalidBuildError("Concurrency must be at least 1")

        self.source_images = images
        self.dest_image = dest_image
        self.concurrency = concurrency
        self.cancel_event = cancel_event
        self._registry_client = RegistryClient(username, password)

    def set_registry_client(self, registry_client: RegistryClient) -> None:
        """
        Set client instance to be used for the HTTP API operations.

        Args:
            registry_client (RegistryClient):
                Instance of RegistryClient.
        """
        self._registry_client = registry_client

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise BuildCancelled(
                "Build of manifest list '{0}' was cancelled".format(self.dest_image)
            )

    def get_manifest_entry(self, source_image: SourceImage) -> ManifestListEntry:
        """
        Fetch the manifest of a source image and describe it as a manifest list entry.

        Args:
            source_image (SourceImage):
                Image to describe.
        Returns (dict):
            Manifest list entry of the image.
        Raises:
            ManifestFetchError:
                If the manifest couldn't be read from the registry.
            DigestComputationError:
                If the manifest is malformed.
        """
        self._check_cancelled()
        LOG.info("Getting manifest of image '{0}'".format(source_image.reference))
        try:
            with self._registry_client.open_session(source_image.reference) as session:
                self._check_cancelled()
                manifest = session.fetch_manifest()
        except RegistryError as e:
            raise ManifestFetchError(source_image.reference, str(e)) from e

        try:
            digest = manifest_digest(manifest)
        except DigestComputationError as e:
            raise DigestComputationError(
                "Invalid manifest of '{0}': {1}".format(source_image.reference, e)
            ) from e

        return {
            "mediaType": self.MANIFEST_TYPE,
            "size": len(manifest),
            "digest": digest,
            "platform": source_image.platform,
        }

    @log_step("Build manifest list")
    def build_manifest_list(self) -> ManifestList:
        """
        Build a manifest list referencing all source images.

        Returns (dict):
            Manifest list with one entry per source image, in the order of the source images.
        """
        entries: List[ManifestListEntry]
        if self.concurrency > 1 and len(self.source_images) > 1:
            results = run_in_parallel(
                self.get_manifest_entry, self.source_images, threads=self.concurrency
            )
            entries = [results[n] for n in range(len(self.source_images))]
        else:
            entries = [self.get_manifest_entry(image) for image in self.source_images]

        seen: Dict[str, str] = {}
        for image, entry in zip(self.source_images, entries):
            if entry["digest"] in seen:
                LOG.warning(
                    "Images '{0}' and '{1}' have the same manifest {2}".format(
                        seen[entry["digest"]], image.reference, entry["digest"]
                    )
                )
            seen.setdefault(entry["digest"], image.reference)

        return {
            "schemaVersion": self.SCHEMA_VERSION,
            "mediaType": self.INDEX_TYPE,
            "manifests": entries,
        }

    @log_step("Publish manifest list")
    def publish(self, manifest_list: ManifestList) -> str:
        """
        Upload a manifest list to the destination image, overwriting whatever it points to.

        Args:
            manifest_list (dict):
                Manifest list to upload.
        Returns (str):
            Digest of the uploaded manifest list.
        Raises:
            PublishError:
                If the registry didn't accept the manifest list.
        """
        data = serialize_manifest_list(manifest_list)
        digest = manifest_digest(data)
        LOG.debug("Manifest list: %s", data.decode("utf-8"))

        self._check_cancelled()
        LOG.info("Uploading the manifest list to '{0}'".format(self.dest_image))
        try:
            with self._registry_client.open_session(self.dest_image) as session:
                registry_digest = session.publish_manifest(data, self.INDEX_TYPE)
        except RegistryError as e:
            raise PublishError(self.dest_image, str(e)) from e

        if registry_digest and registry_digest != digest:
            LOG.warning(
                "Registry reported digest {0} for the manifest list, expected {1}".format(
                    registry_digest, digest
                )
            )
        return digest

    def build_and_publish(self) -> str:
        """Build the manifest list and upload it. Main entrypoint method."""
        LOG.info(
            "Building manifest list '{0}' out of {1} image(s)".format(
                self.dest_image, len(self.source_images)
            )
        )
        manifest_list = self.build_manifest_list()
        LOG.info("Manifest list:\n%s", json.dumps(manifest_list, indent=4))
        digest = self.publish(manifest_list)
        LOG.info("Manifest list '{0}' published: {1}".format(self.dest_image, digest))
        return digest


def validate_source_images(source_images: Sequence[SourceImage]) -> None:
    """
    Check that source images can make up one manifest list.

    Args:
        source_images ([SourceImage]):
            Images to validate.
    Raises:
        InvalidBuildError:
            If there are no source images.
        ReferenceParseError:
            If a reference is malformed.
        DuplicatePlatformError:
            If two images have the same platform.
    """
    if not source_images:
        raise InvalidBuildError("At least one source image is required")

    platforms: Dict[tuple, str] = {}
    for image in source_images:
        parse_image_reference(image.reference)
        if image.platform_key in platforms:
            raise DuplicatePlatformError(
                "Images '{0}' and '{1}' have the same platform {2}".format(
                    platforms[image.platform_key],
                    image.reference,
                    "/".join(p for p in (image.os, image.architecture, image.variant) if p),
                )
            )
        platforms[image.platform_key] = image.reference


def build_and_publish(
    source_images: Iterable[SourceImage],
    destination_reference: str,
    credential: Optional[AuthCredential],
    registry_client: Optional[RegistryClient] = None,
    concurrency: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> str:
    """
    Build a manifest list out of single-platform images and publish it.

    Args:
        source_images ([SourceImage]):
            Images to reference, in the order they should appear in the manifest list.
        destination_reference (str):
            Image reference (by tag) the manifest list is uploaded to.
        credential (AuthCredential):
            Registry credentials used for all reads and the write. None for anonymous access.
        registry_client (RegistryClient):
            Client to use instead of one created from the credential.
        concurrency (int):
            Number of manifests fetched at the same time.
        cancel_event (threading.Event):
            When set, the build is aborted before the next registry request.
    Returns (str):
        Digest of the published manifest list.
    Raises:
        BuildError:
            Subclass describing the failure. Nothing is published if any image fails.
    """
    builder = ManifestIndexBuilder(
        source_images,
        destination_reference,
        username=credential.username if credential else None,
        password=credential.password if credential else None,
        concurrency=concurrency,
        cancel_event=cancel_event,
    )
    if registry_client is not None:
        builder.set_registry_client(registry_client)
    return builder.build_and_publish()
