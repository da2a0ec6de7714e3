import logging
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib import request

import requests
from urllib3.util.retry import Retry

from .exceptions import (
    ManifestNotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    RegistryAuthError,
    RegistryError,
)
from .registry_session import DEFAULT_TIMEOUT, RegistrySession
from .utils.misc import ImageReference, parse_image_reference, registry_api_url

LOG = logging.getLogger("manifest_index")

QUOTA_ERROR_CODES = ("TOOMANYREQUESTS", "QUOTA_EXCEEDED")
QUOTA_STATUS_CODES = (413, 429)


class RegistryClient:
    """Class for performing Docker HTTP API manifest operations with a container registry."""

    MANIFEST_LIST_TYPE = "application/vnd.docker.distribution.manifest.list.v2+json"
    MANIFEST_V2S2_TYPE = "application/vnd.docker.distribution.manifest.v2+json"
    MANIFEST_V2S1_TYPE = "application/vnd.docker.distribution.manifest.v1+json"
    MANIFEST_OCI_LIST_TYPE = "application/vnd.oci.image.index.v1+json"
    MANIFEST_OCI_V2S2_TYPE = "application/vnd.oci.image.manifest.v1+json"

    ACCEPTED_MANIFEST_TYPES = (
        MANIFEST_OCI_V2S2_TYPE,
        MANIFEST_V2S2_TYPE,
        MANIFEST_OCI_LIST_TYPE,
        MANIFEST_LIST_TYPE,
        MANIFEST_V2S1_TYPE,
    )

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
    ) -> None:
        """
        Initialize.

        Args:
            username (str):
                Registry username. Anonymous access is attempted if omitted.
            password (str):
                Registry password.
            timeout (float):
                Timeout (in seconds) of every registry request.
            verify (bool):
                Whether to verify TLS certificates of the registry.
        """
        self.username = username
        self.password = password
        self.timeout = timeout
        self.verify = verify

    def open_session(self, image: str) -> "ManifestSession":
        """
        Open a session for reading or writing the manifest of an image.

        Args:
            image (str):
                Image reference, e.g. 'quay.io/namespace/image:1'.
        Returns (ManifestSession):
            Session bound to the image. Must be closed after use.
        Raises:
            ReferenceParseError:
                If the image reference is malformed.
        """
        image_ref = parse_image_reference(image)
        return ManifestSession(self, image, image_ref)


class ManifestSession:
    """Authenticated session bound to the manifest of one image."""

    def __init__(self, client: RegistryClient, image: str, image_ref: ImageReference) -> None:
        """
        Initialize.

        Args:
            client (RegistryClient):
                Client holding the credentials and connection settings.
            image (str):
                Image reference as given by the caller.
            image_ref (ImageReference):
                Parsed image reference.
        """
        self.client = client
        self.image = image
        self.image_ref = image_ref
        self.session = RegistrySession(
            registry_api_url(image_ref.registry), timeout=client.timeout, verify=client.verify
        )
        self.endpoint = "{0}/manifests/{1}".format(image_ref.repository, image_ref.reference)

    def __enter__(self) -> "ManifestSession":
        """Use the session as a context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Release the session."""
        self.close()

    def close(self) -> None:
        """Release connections held by the session."""
        self.session.close()

    def fetch_manifest(self) -> bytes:
        """
        Get the raw manifest of the image.

        Every supported manifest type is accepted, the registry decides which one is returned.

        Returns (bytes):
            Manifest exactly as returned by the registry.
        Raises:
            RegistryError:
                When the registry request fails.
        """
        kwargs = {"headers": {"Accept": ", ".join(RegistryClient.ACCEPTED_MANIFEST_TYPES)}}
        response = self._request("GET", kwargs)
        LOG.debug(
            "Got manifest of '%s' (%s, %d bytes)",
            self.image,
            response.headers.get("Content-Type"),
            len(response.content),
        )
        return response.content

    def publish_manifest(self, manifest: bytes, media_type: str) -> Optional[str]:
        """
        Upload a raw manifest to the image, overwriting its current one.

        Args:
            manifest (bytes):
                Manifest to be uploaded.
            media_type (str):
                Media type of the manifest.
        Returns (str):
            Digest reported by the registry, if any.
        Raises:
            RegistryError:
                When the registry request fails.
        """
        kwargs = {"headers": {"Content-Type": media_type}, "data": manifest}
        response = self._request("PUT", kwargs)
        return response.headers.get("Docker-Content-Digest")

    def _request(self, method: str, kwargs: Dict[str, Any]) -> requests.Response:
        """
        Perform a request against the manifest endpoint. Handle authentication.

        Args:
            method (str):
                REST API method of the request (GET, PUT).
            kwargs (dict):
                Optional arguments to add to the Request object.
        Returns (Response):
            Request library's Response object.
        Raises:
            RegistryError: When the request fails or returns an error status.
        """
        try:
            r = self.session.request(method, self.endpoint, **kwargs)
            # 401 is tolerated as Bearer token might need to be generated
            if r.status_code == 401:
                LOG.debug("Unauthorized request, attempting to authenticate.")
                self._authenticate(r.headers)
                r = self.session.request(method, self.endpoint, **kwargs)
        except requests.exceptions.RequestException as e:
            raise RegistryError("{0} request of '{1}' failed: {2}".format(method, self.image, e))

        _raise_for_status(r, method)
        return r

    def _authenticate(self, headers: Union[Dict[Any, Any], Mapping[str, Any]]) -> None:
        """
        Authenticate with the scheme requested by the registry.

        Bearer tokens are requested from the registry's authentication server and added to
        the session. Specifics can be found at https://docs.docker.com/registry/spec/auth/token/

        Args:
            headers (dict):
                Headers of the 401 response received from the registry.
        Raises:
            RegistryAuthError:
                When there's an issue with the authentication procedure.
        """
        challenge = headers.get("WWW-Authenticate")
        if not challenge:
            raise RegistryAuthError(
                "'WWW-Authenticate' is not in the 401 response's header. "
                "Authentication cannot continue.",
                401,
            )

        scheme, _, params_str = challenge.partition(" ")
        if scheme.lower() == "basic":
            if not self.client.username:
                raise RegistryAuthError("Registry requires credentials but none were given.", 401)
            self.session.set_basic_auth((self.client.username, self.client.password or ""))
            return
        if scheme.lower() != "bearer":
            raise RegistryAuthError(
                "Unsupported authentication type '{0}' was requested. "
                "Only Bearer and Basic are supported.".format(scheme),
                401,
            )

        # parse header to get a dictionary
        params = request.parse_keqv_list(request.parse_http_list(params_str))
        if "realm" not in params:
            raise RegistryAuthError("Bearer challenge doesn't specify a realm.", 401)
        host = params.pop("realm")
        token_session = requests.Session()
        retry = Retry(
            total=3,
            read=3,
            connect=3,
            backoff_factor=2,
            status_forcelist=set(range(500, 512)),
        )
        adapter = requests.adapters.HTTPAdapter(max_retries=retry)
        token_session.mount("http://", adapter)
        token_session.mount("https://", adapter)
        auth = None
        if self.client.username:
            auth = (self.client.username, self.client.password or "")
        try:
            # Basic username + password authentication is expected by the realm.
            r = token_session.get(
                host,
                params=params,
                auth=auth,
                timeout=self.client.timeout,
                verify=self.client.verify,
            )
            r.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise RegistryAuthError("Token request to '{0}' failed: {1}".format(host, e), 401)
        finally:
            token_session.close()

        try:
            data = r.json()
        except ValueError:
            raise RegistryAuthError("Authentication server response is not valid JSON.", 401)

        token = data.get("token") or data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise RegistryAuthError("Authentication server response doesn't contain a token.", 401)
        self.session.set_auth_token(token)


def _error_details(response: requests.Response) -> List[Dict[str, Any]]:
    try:
        errors = response.json().get("errors")
    except (ValueError, AttributeError):
        return []
    return [e for e in errors if isinstance(e, dict)] if isinstance(errors, list) else []


def _raise_for_status(response: requests.Response, method: str) -> None:
    """
    Raise a typed error for an unsuccessful registry response.

    Args:
        response (Response):
            Response of the registry.
        method (str):
            Method of the request, used in the error message.
    Raises:
        RegistryError: Subclass matching the failure.
    """
    status = response.status_code
    if status < 400:
        return

    errors = _error_details(response)
    codes = [str(e.get("code", "")).upper() for e in errors]
    detail = "; ".join(str(e.get("message") or e.get("code")) for e in errors)
    message = "{0} {1} for {2} {3}".format(status, response.reason, method, response.url)
    if detail:
        message = "{0}: {1}".format(message, detail)

    if status == 401:
        raise RegistryAuthError(message, status)
    quota_exceeded = any(c in QUOTA_ERROR_CODES for c in codes) or "quota" in detail.lower()
    if status in QUOTA_STATUS_CODES or quota_exceeded:
        raise QuotaExceededError(message, status)
    if status == 403:
        raise PermissionDeniedError(message, status)
    if status == 404:
        raise ManifestNotFoundError(message, status)
    raise RegistryError(message, status)
