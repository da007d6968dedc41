"""Raw-content client for GitHub-hosted plugins."""

from __future__ import annotations

import logging
import ssl
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from bifrost_plugin.config.parser import parse_plugin_manifest
from bifrost_plugin.config.schemas import PluginManifest

logger = logging.getLogger(__name__)

RAW_CONTENT_BASE = "https://raw.githubusercontent.com"
MANIFEST_FILE = "plugin.bifrost"
FILES_DIR = "files"


class FetchError(Exception):
    """Error fetching plugin content."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class GitHubPluginSource:
    """Fetches a plugin's manifest and files from a GitHub repository.

    Layout of a plugin repository on its branch:

        plugin.bifrost      manifest (JSON)
        files/<name>        plugin files and config fragments

    Every request carries a timeout; there are no retries.
    """

    DEFAULT_TIMEOUT = 30  # seconds
    DEFAULT_REF = "main"

    def __init__(
        self,
        repository: str,
        ref: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        base_url: str = RAW_CONTENT_BASE,
    ):
        """Initialize the client.

        Args:
            repository: GitHub ``owner/repo`` identifier
            ref: Branch or tag to read from (default: main)
            headers: Optional HTTP headers (for authentication, etc.)
            timeout: Request timeout in seconds (default: 30)
            base_url: Raw-content host
        """
        repository = repository.strip().strip("/")
        if repository.count("/") != 1 or not all(repository.split("/")):
            raise FetchError(f"Invalid GitHub repository: {repository!r} (expected owner/repo)")

        self._repository = repository
        self._ref = ref or self.DEFAULT_REF
        self._headers = headers or {}
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._url = f"{base_url.rstrip('/')}/{repository}/{quote(self._ref)}/"
        self._ssl_context = ssl.create_default_context()

        logger.debug("Initialized GitHub source for %s at %s", repository, self._ref)

    @property
    def repository(self) -> str:
        return self._repository

    @property
    def base_url(self) -> str:
        """Get the raw-content URL of the plugin repository root."""
        return self._url

    def manifest_url(self) -> str:
        return f"{self._url}{MANIFEST_FILE}"

    def file_url(self, name: str) -> str:
        return f"{self._url}{FILES_DIR}/{quote(name.lstrip('/'))}"

    def _make_request(self, url: str) -> bytes:
        """Make a GET request.

        Args:
            url: URL to request

        Returns:
            Response body as bytes

        Raises:
            FetchError: If request fails
        """
        logger.debug("Fetching %s", url)
        try:
            request = Request(url)
            for key, value in self._headers.items():
                request.add_header(key, value)

            with urlopen(request, timeout=self._timeout, context=self._ssl_context) as response:
                result: bytes = response.read()
                logger.debug("Request successful, received %d bytes", len(result))
                return result
        except HTTPError as e:
            logger.error("HTTP error %d: %s for %s", e.code, e.reason, url)
            raise FetchError(
                f"HTTP {e.code}: {e.reason} for {url}",
                url=url,
                status_code=e.code,
            ) from e
        except URLError as e:
            logger.error("Failed to connect to %s: %s", url, e.reason)
            raise FetchError(
                f"Failed to connect to {url}: {e.reason}",
                url=url,
            ) from e
        except TimeoutError as e:
            logger.error("Request timed out for %s", url)
            raise FetchError(
                f"Request timed out for {url}",
                url=url,
            ) from e

    def _fetch_text(self, url: str) -> str:
        content = self._make_request(url)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FetchError(f"Content at {url} is not UTF-8 text", url=url) from e

    def fetch_manifest(self) -> PluginManifest:
        """Fetch and parse plugin.bifrost.

        Raises:
            FetchError: If the manifest cannot be downloaded
            ConfigError: If the manifest is invalid
        """
        url = self.manifest_url()
        try:
            content = self._make_request(url)
        except FetchError as e:
            raise FetchError(
                f"Failed to fetch plugin configuration: {e}", url=url, status_code=e.status_code
            ) from e
        return parse_plugin_manifest(content, source=url)

    def fetch_file(self, name: str) -> str:
        """Fetch a plugin file or config fragment as text.

        Args:
            name: Path under the plugin's files directory

        Raises:
            FetchError: If the file cannot be downloaded
        """
        url = self.file_url(name)
        try:
            return self._fetch_text(url)
        except FetchError as e:
            raise FetchError(
                f"Failed to fetch file {name}: {e}", url=url, status_code=e.status_code
            ) from e

    def __repr__(self) -> str:
        return f"GitHubPluginSource(repository={self._repository!r}, ref={self._ref!r})"
