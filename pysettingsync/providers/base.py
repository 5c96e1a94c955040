"""Backend-agnostic remote provider built on the repository contents API."""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..exceptions import (
    AuthError,
    BranchMismatchError,
    ConflictError,
    DecodeError,
    NetworkError,
    RemoteIOError,
    RepoCreateError,
    SettingsSyncError,
)
from ..models import DirEntry, RemoteFile, RepoRef
from ..resolver import write_with_branch_fallback
from ..utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    REPO_DESCRIPTION,
    decode_content,
    encode_path_for_url,
    normalize_repo_path,
)

logger = logging.getLogger(__name__)


class RemoteProvider(ABC):
    """Client for one Git-hosting backend.

    GitHub and Gitee expose the same shape of contents API (``GET`` a path
    for its base64 content and blob sha, or for a directory listing), so
    reads, listings, repository probing and creation live here. Subclasses
    supply authentication, the write verb(s) and the mapping from backend
    error text onto :class:`ConflictError` and :class:`BranchMismatchError`.
    """

    kind: str = ""
    default_api_url: str = ""
    fallback_branch: str = "main"

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the provider.

        Args:
            token: Personal access token for the backend
            api_url: Optional API base URL (defaults to the public service)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport, used by tests
        """
        if not token:
            raise AuthError(f"No {self.kind or 'provider'} token configured")
        self.token = token
        self.api_url = (api_url or self.default_api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(api_url={self.api_url!r})"

    def __enter__(self) -> RemoteProvider:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # =========================
    # HTTP plumbing
    # =========================

    def _auth_headers(self) -> dict[str, str]:
        """Headers carrying the credential (if the backend uses headers)."""
        return {}

    def _auth_params(self) -> dict[str, str]:
        """Query parameters carrying the credential (if the backend uses them)."""
        return {}

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers=self._auth_headers(),
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _extract_message(response: httpx.Response) -> str:
        """Pull the backend's own error message out of a response body."""
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None
        if isinstance(data, dict):
            msg = (
                data.get("message")
                or data.get("error_description")
                or data.get("error")
                or data.get("detail")
            )
            if msg:
                return str(msg)
        text = response.text.strip() if response.content else ""
        return text or f"{response.status_code} {response.reason_phrase}"

    def _classify_error(
        self, status: int, message: str, path: str | None
    ) -> RemoteIOError:
        """Map a non-2xx response onto the error taxonomy.

        Subclasses extend this with their backend's conflict and branch
        vocabulary.
        """
        return RemoteIOError(status, message, path=path)

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int, path: str | None
    ) -> tuple[SettingsSyncError, bool]:
        """Handle HTTP errors and determine if retry should occur.

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        message = self._extract_message(e.response)

        if status_code == 401:
            return (AuthError(f"Invalid or expired {self.kind} token: {message}"), False)

        error = self._classify_error(status_code, message, path)
        should_retry = (
            status_code == 429 or 500 <= status_code < 600
        ) and attempt < self.max_retries
        return (error, should_retry)

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        path: str | None = None,
    ) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            params: Extra query parameters
            json: JSON request body
            path: Repository path the request concerns (error context)

        Returns:
            Parsed JSON body, or None for an empty body

        Raises:
            SettingsSyncError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        query = {**self._auth_params(), **(params or {})}
        last_exception: SettingsSyncError | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"{method} {url} (attempt {attempt + 1})")
                response = client.request(method, url, params=query, json=json)
                response.raise_for_status()
                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    raise RemoteIOError(
                        response.status_code,
                        "Invalid JSON response from server",
                        path=path,
                    ) from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt, path)
                last_exception = error
                if should_retry:
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.info(
                        f"{self.kind}: HTTP {e.response.status_code}, "
                        f"retrying in {delay:.1f}s"
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = NetworkError(f"Network error: {e}")
                last_exception = error
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.info(f"{self.kind}: {error}, retrying in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                raise error from e

        # If we get here, we've exhausted all retries
        if last_exception:
            raise last_exception
        raise NetworkError("Request failed after all retry attempts")

    # =========================
    # Endpoints
    # =========================

    @staticmethod
    def _repo_endpoint(owner: str, repo: str) -> str:
        return f"/repos/{encode_path_for_url(owner)}/{encode_path_for_url(repo)}"

    def _contents_endpoint(self, ref: RepoRef, path: str) -> str:
        base = self._repo_endpoint(ref.owner, ref.repo)
        return f"{base}/contents/{encode_path_for_url(path)}"

    def _get_contents(self, ref: RepoRef, path: str) -> Any:
        """GET a contents path; None when the backend reports not-found."""
        try:
            return self._request(
                "GET",
                self._contents_endpoint(ref, path),
                params={"ref": ref.branch},
                path=path,
            )
        except RemoteIOError as e:
            if e.status == 404:
                return None
            raise

    # =========================
    # Identity & repository lifecycle
    # =========================

    def get_viewer_login(self) -> str:
        """Return the login of the authenticated user.

        Raises:
            AuthError: If the token is invalid or expired
        """
        data = self._request("GET", "/user")
        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            raise AuthError(f"{self.kind} did not return a login for this token")
        return str(login)

    def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch name.

        Falls back to the backend's conventional name when the metadata
        omits it.
        """
        data = self._request("GET", self._repo_endpoint(owner, repo))
        branch = data.get("default_branch") if isinstance(data, dict) else None
        return str(branch) if branch else self.fallback_branch

    def ensure_repo(self, owner: str, repo: str, is_private: bool = True) -> None:
        """Create the repository if it does not exist yet.

        Raises:
            RepoCreateError: If the backend rejects the creation
        """
        try:
            self._request("GET", self._repo_endpoint(owner, repo))
            logger.debug(f"Repository {owner}/{repo} exists")
            return
        except RemoteIOError as e:
            if e.status != 404:
                raise

        logger.info(f"Creating {'private' if is_private else 'public'} repository {repo}")
        try:
            self._request(
                "POST",
                "/user/repos",
                json={
                    "name": repo,
                    "private": is_private,
                    "auto_init": True,
                    "description": REPO_DESCRIPTION,
                },
            )
        except RemoteIOError as e:
            raise RepoCreateError(e.status, e.message, repo=repo) from e

    # =========================
    # File I/O
    # =========================

    def read_file(self, ref: RepoRef, path: str) -> RemoteFile | None:
        """Fetch one file's decoded text and revision tag.

        Files too large for the contents API come back without inline
        content (``"encoding": "none"``); their text is fetched through the
        git blobs API instead.

        Returns:
            RemoteFile, or None if the file does not exist

        Raises:
            RemoteIOError: For failures other than not-found
            DecodeError: If the content is not valid base64-encoded UTF-8
        """
        path = normalize_repo_path(path)
        data = self._get_contents(ref, path)
        if not isinstance(data, dict) or data.get("content") is None:
            return None

        sha = data.get("sha")
        encoding = data.get("encoding")
        if encoding and encoding != "base64":
            logger.debug(f"{path} has no inline content ({encoding}), fetching blob")
            content = self._read_blob(ref, path, sha)
        else:
            content = decode_content(str(data["content"]))
        return RemoteFile(content=content, sha=sha)

    def _read_blob(self, ref: RepoRef, path: str, sha: Any) -> str:
        """Fetch a file's text through the git blobs API.

        Raises:
            DecodeError: If no blob is available or it is not base64 content
        """
        if not sha:
            raise DecodeError(f"{path}: content not inline and no blob sha given")
        endpoint = (
            f"{self._repo_endpoint(ref.owner, ref.repo)}/git/blobs/"
            f"{encode_path_for_url(str(sha))}"
        )
        data = self._request("GET", endpoint, path=path)
        if (
            not isinstance(data, dict)
            or data.get("content") is None
            or data.get("encoding", "base64") != "base64"
        ):
            raise DecodeError(f"{path}: blob {sha} has no base64 content")
        return decode_content(str(data["content"]))

    def list_dir(self, ref: RepoRef, path: str) -> list[DirEntry]:
        """List the immediate children of a directory.

        Returns an empty list if the directory does not exist.
        """
        path = normalize_repo_path(path)
        data = self._get_contents(ref, path)
        if not isinstance(data, list):
            return []
        return [DirEntry.from_api(item) for item in data if isinstance(item, dict)]

    def _fetch_sha(self, ref: RepoRef, path: str) -> str | None:
        """Return the current revision tag of a file, or None if absent."""
        try:
            data = self._get_contents(ref, path)
        except BranchMismatchError:
            # Let the write itself report the missing branch.
            return None
        if isinstance(data, dict) and data.get("sha"):
            return str(data["sha"])
        return None

    def write_file(self, ref: RepoRef, path: str, content: str, message: str) -> str:
        """Create or overwrite one file.

        The revision tag is re-fetched immediately before writing. A
        rejected write because of a stale or missing tag is retried once as
        an update with a freshly fetched tag; a write rejected because the
        branch does not exist falls back through the candidate branches.

        Returns:
            The branch the write landed on
        """
        path = normalize_repo_path(path)
        return write_with_branch_fallback(
            lambda branch: self._write_on_branch(
                ref.with_branch(branch), path, content, message
            ),
            ref.branch,
        )

    def _write_on_branch(
        self, ref: RepoRef, path: str, content: str, message: str
    ) -> None:
        sha = self._fetch_sha(ref, path)
        try:
            self._put_file(ref, path, content, message, sha)
        except ConflictError as e:
            fresh_sha = self._fetch_sha(ref, path)
            if fresh_sha is None and sha is None:
                raise
            logger.info(f"Write conflict on {path} ({e.message}), retrying as update")
            self._put_file(ref, path, content, message, fresh_sha)

    @abstractmethod
    def _put_file(
        self,
        ref: RepoRef,
        path: str,
        content: str,
        message: str,
        sha: str | None,
    ) -> None:
        """Issue a single create-or-update request on ``ref.branch``."""
