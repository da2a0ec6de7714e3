import hashlib
import json

from .exceptions import DigestComputationError
from .types import ManifestList

DIGEST_ALGORITHM = "sha256"


def manifest_digest(manifest: bytes) -> str:
    """
    Calculate digest of a manifest.

    The digest is calculated from the exact bytes returned by the registry, never from a
    re-serialized document, as registries and clients verify it against the raw content.

    Args:
        manifest (bytes):
            Raw manifest.
    Returns (str):
        Digest in the form 'sha256:<hex>'.
    Raises:
        DigestComputationError:
            If the manifest isn't a JSON object with an integer 'schemaVersion'.
    """
    if not isinstance(manifest, (bytes, bytearray)):
        raise TypeError("Manifest must be bytes, not {0}".format(type(manifest).__name__))

    try:
        parsed = json.loads(manifest)
    except ValueError as e:
        raise DigestComputationError("Manifest is not valid JSON: {0}".format(e))
    if not isinstance(parsed, dict):
        raise DigestComputationError("Manifest is not a JSON object")
    schema_version = parsed.get("schemaVersion")
    if not isinstance(schema_version, int) or isinstance(schema_version, bool):
        raise DigestComputationError("Manifest doesn't have an integer 'schemaVersion'")

    hasher = hashlib.new(DIGEST_ALGORITHM)
    hasher.update(manifest)
    return "{0}:{1}".format(DIGEST_ALGORITHM, hasher.hexdigest())


def serialize_manifest_list(manifest_list: ManifestList) -> bytes:
    """
    Serialize a manifest list to the bytes which get uploaded.

    Keys keep their insertion order ('schemaVersion', 'mediaType', 'manifests' and
    'mediaType', 'size', 'digest', 'platform' per entry), output is compact.

    Args:
        manifest_list (dict):
            Manifest list to serialize.
    Returns (bytes):
        UTF-8 encoded JSON document.
    """
    manifests = []
    for entry in manifest_list["manifests"]:
        platform = {
            "architecture": entry["platform"]["architecture"],
            "os": entry["platform"]["os"],
        }
        if entry["platform"].get("variant"):
            platform["variant"] = entry["platform"]["variant"]
        manifests.append(
            {
                "mediaType": entry["mediaType"],
                "size": entry["size"],
                "digest": entry["digest"],
                "platform": platform,
            }
        )
    document = {
        "schemaVersion": manifest_list["schemaVersion"],
        "mediaType": manifest_list["mediaType"],
        "manifests": manifests,
    }
    return json.dumps(document, separators=(",", ":")).encode("utf-8")
