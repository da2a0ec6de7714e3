import logging
from typing import Any, Optional, Tuple

import requests

LOG = logging.getLogger("manifest_index")

DEFAULT_TIMEOUT = 10


class RegistrySession:
    """Helper class for making requests against one registry's Docker HTTP API."""

    def __init__(
        self, base_url: str, timeout: float = DEFAULT_TIMEOUT, verify: bool = True
    ) -> None:
        """
        Initialize.

        Args:
            base_url (str):
                Scheme and host of the registry API, e.g. 'https://quay.io'.
            timeout (float):
                Timeout (in seconds) applied to every request.
            verify (bool):
                Whether to verify TLS certificates of the registry.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.verify = verify

    def __enter__(self) -> "RegistrySession":
        """Use the session as a context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Release the session."""
        self.close()

    def close(self) -> None:
        """Close the underlying connections."""
        self.session.close()

    def set_auth_token(self, token: str) -> None:
        """
        Set bearer token used for all subsequent requests.

        Args:
            token (str):
                Registry bearer token.
        """
        self.session.auth = None
        self.session.headers["Authorization"] = "Bearer {0}".format(token)

    def set_basic_auth(self, auth: Tuple[str, str]) -> None:
        """
        Use HTTP Basic authentication for all subsequent requests.

        Args:
            auth ((str, str)):
                Username and password.
        """
        self.session.headers.pop("Authorization", None)
        self.session.auth = auth

    def get(self, endpoint: str, **kwargs: Any) -> requests.Response:
        """
        HTTP GET request against the registry API.

        Args:
            endpoint (str):
                Endpoint of the request.
        Returns (Response):
            Request library's Response object.
        """
        return self.request("GET", endpoint, **kwargs)

    def put(self, endpoint: str, **kwargs: Any) -> requests.Response:
        """
        HTTP PUT request against the registry API.

        Args:
            endpoint (str):
                Endpoint of the request.
        Returns (Response):
            Request library's Response object.
        """
        return self.request("PUT", endpoint, **kwargs)

    def request(self, method: str, endpoint: str, **kwargs: Any) -> requests.Response:
        """
        HTTP request against the registry API.

        Args:
            method (str):
                REST API method of the request (GET, PUT, ...).
            endpoint (str):
                Endpoint of the request.
        Returns (Response):
            Request library's Response object.
        """
        kwargs.setdefault("timeout", self.timeout)
        return self.session.request(method, self._api_url(endpoint), **kwargs)

    def _api_url(self, endpoint: Optional[str]) -> str:
        """
        Generate full URL out of an endpoint.

        Args:
            endpoint (str):
                Endpoint relative to the API root, e.g. 'namespace/image/manifests/1'.
        Returns (str):
            Full URL of the endpoint.
        """
        return "{0}/v2/{1}".format(self.base_url, endpoint or "")
