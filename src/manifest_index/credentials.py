import base64
import binascii
import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import CredentialEncodingError, CredentialMalformed, CredentialNotFound
from .models import AuthCredential
from .utils.misc import DOCKER_HUB_ALIASES

LOG = logging.getLogger("manifest_index")

AUTH_FILE_ENV_VARIABLE = "REGISTRY_AUTH_FILE"


def default_auth_file_paths() -> List[str]:
    """
    Get candidate locations of the auth file, in order of preference.

    Returns ([str]):
        $REGISTRY_AUTH_FILE, $XDG_RUNTIME_DIR/containers/auth.json, ~/.docker/config.json
        (only the locations whose variables are set).
    """
    paths = []
    if os.environ.get(AUTH_FILE_ENV_VARIABLE):
        paths.append(os.environ[AUTH_FILE_ENV_VARIABLE])
    if os.environ.get("XDG_RUNTIME_DIR"):
        paths.append(os.path.join(os.environ["XDG_RUNTIME_DIR"], "containers", "auth.json"))
    paths.append(os.path.join(os.path.expanduser("~"), ".docker", "config.json"))
    return paths


def load_auth_file(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load registry auth entries from a container auth file.

    Args:
        path (str):
            Path to the auth file. If omitted, the first existing default location is used.
    Returns (dict):
        Mapping of registry hostname to its auth entry.
    Raises:
        CredentialNotFound:
            If the auth file doesn't exist.
        CredentialMalformed:
            If the auth file isn't a JSON document with an 'auths' object.
    """
    if path is None:
        candidates = default_auth_file_paths()
        existing = [p for p in candidates if os.path.isfile(p)]
        if not existing:
            raise CredentialNotFound(
                "No auth file found in any of: {0}".format(", ".join(candidates))
            )
        path = existing[0]

    if not os.path.isfile(path):
        raise CredentialNotFound("Auth file '{0}' doesn't exist".format(path))

    LOG.debug("Reading registry credentials from '%s'", path)
    with open(path) as f:
        try:
            config = json.load(f)
        except ValueError as e:
            raise CredentialMalformed("Auth file '{0}' is not valid JSON: {1}".format(path, e))

    auths = config.get("auths", {}) if isinstance(config, dict) else None
    if not isinstance(auths, dict):
        raise CredentialMalformed("Auth file '{0}' doesn't contain an 'auths' object".format(path))
    return auths


def _candidate_keys(registry_host: str) -> List[str]:
    hosts = list(DOCKER_HUB_ALIASES) if registry_host in DOCKER_HUB_ALIASES else [registry_host]
    keys = []
    for host in hosts:
        keys.append(host)
        if not host.startswith("https://"):
            keys.append("https://{0}".format(host))
    return keys


def resolve_credential(store: Mapping[str, Any], registry_host: str) -> AuthCredential:
    """
    Get username and password of a registry from an auth store.

    Args:
        store (dict):
            Mapping of registry hostname to an auth entry {"auth": <base64 of user:password>}.
        registry_host (str):
            Hostname of a container registry.
    Returns (AuthCredential):
        Username and password of the registry.
    Raises:
        CredentialNotFound:
            If the store has no entry for the registry.
        CredentialEncodingError:
            If the entry isn't valid base64.
        CredentialMalformed:
            If the decoded entry doesn't have the 'username:password' format.
    """
    entry = None
    for key in _candidate_keys(registry_host):
        if key in store:
            entry = store[key]
            break

    auth = entry.get("auth") if isinstance(entry, dict) else None
    if not auth:
        raise CredentialNotFound("No auth entry for registry: {0}".format(registry_host))

    try:
        decoded = base64.b64decode(auth, validate=True).decode("utf-8")
    except (binascii.Error, TypeError, ValueError) as e:
        raise CredentialEncodingError(
            "Auth entry of registry {0} is not valid base64: {1}".format(registry_host, e)
        )

    # Passwords may contain colons, usernames can't
    username, sep, password = decoded.partition(":")
    if not sep:
        raise CredentialMalformed(
            "Invalid auth entry format for registry: {0}".format(registry_host)
        )

    return AuthCredential(username=username, password=password)
