"""
crates.io registry client.

Resolves the newest published version of a crate. A single read-only
request is made per call; there is no retry and no caching of the answer,
callers that want either must add it themselves.
"""

import logging
from typing import Optional

import requests
from requests.exceptions import RequestException

from cargokit.core.exceptions import ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://crates.io/api/v1/crates"
DEFAULT_TIMEOUT = 30
USER_AGENT = "cargokit/0.1 (tool installer for CI)"


class CratesRegistry:
    """
    Thin client for the crates.io crate lookup endpoint.

    Attributes:
        base_url: Crate lookup endpoint; the crate name is appended to it
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def crate_url(self, crate: str) -> str:
        """Return the lookup URL for crate."""
        return f"{self.base_url}/{crate}"

    def resolve_latest_version(self, crate: str) -> str:
        """
        Resolve the latest version of a crate.

        Args:
            crate: Crate name (e.g., 'cross')

        Returns:
            Newest published version string (e.g., '0.2.5')

        Raises:
            ResolutionError: If the registry is unreachable, answers with a
                non-success status, or the body lacks the version field
        """
        url = self.crate_url(crate)
        logger.debug(f"Resolving latest version of {crate} from {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except RequestException as e:
            raise ResolutionError(crate, f"request failed: {e}") from e

        if not response.ok:
            raise ResolutionError(
                crate, f"registry returned HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ResolutionError(crate, "response is not valid JSON") from e

        version = None
        if isinstance(body, dict) and isinstance(body.get("crate"), dict):
            version = body["crate"].get("newest_version")

        if not version or not isinstance(version, str):
            raise ResolutionError(crate, "response has no crate.newest_version field")

        logger.debug(f"Latest version of {crate} is {version}")
        return version


def resolve_latest_version(crate: str) -> str:
    """
    Resolve the latest version of a crate using the default registry.

    Example:
        >>> resolve_latest_version('cargo-hack')
        '0.6.28'
    """
    return CratesRegistry().resolve_latest_version(crate)
