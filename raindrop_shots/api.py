"""Raindrop.io REST client used to upload screenshots.

Wraps a synchronous ``httpx.Client``.  Every call carries the current
bearer token; a 401 response triggers at most one token refresh and one
retry of the same request before the failure is surfaced as AuthError.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any

import httpx

from raindrop_shots.config import Config
from raindrop_shots.exceptions import (
    APIError,
    AuthError,
    FileInvalidError,
    FileSizeLimitError,
    NoFileError,
    RaindropError,
    UploadError,
)
from raindrop_shots.models import Collection, QuotaSnapshot, UploadResult, UserProfile

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.raindrop.io/rest/v1"
TOKEN_URL = "https://raindrop.io/oauth/access_token"

_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}
_DEFAULT_MIME_TYPE = "application/octet-stream"

# Raindrop.io upload error codes -> (exception, message)
_UPLOAD_ERRORS: dict[str, tuple[type[UploadError], str]] = {
    "file_invalid": (FileInvalidError, "File is invalid or corrupted"),
    "file_size_limit": (FileSizeLimitError, "File size exceeds limit"),
    "no file": (NoFileError, "No file was provided"),
}


def guess_mime_type(path: str | Path) -> str:
    """Return the upload MIME type for *path* based on its extension."""
    return _MIME_TYPES.get(Path(path).suffix.lower(), _DEFAULT_MIME_TYPE)


def short_date(day: date | None = None) -> str:
    """Format *day* (default: today) as ``M/D/YYYY``."""
    day = day or date.today()
    return f"{day.month}/{day.day}/{day.year}"


def default_excerpt(day: date | None = None) -> str:
    """Return the excerpt attached to uploads that don't supply one."""
    return f"Screenshot taken on {short_date(day)}"


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def _collection_ref(value: str | int) -> str | int:
    text = str(value)
    return int(text) if text.lstrip("-").isdigit() else text


def _error_detail(response: httpx.Response) -> str:
    payload = _json_or_empty(response)
    detail = payload.get("errorMessage") or payload.get("error")
    if detail:
        return str(detail)
    return response.text[:200]


class RaindropClient:
    """Authenticated client for the Raindrop.io REST API.

    Example:
        with RaindropClient(config) as client:
            profile = client.test_connection()
            result = client.upload_file("Screenshot 2024-01-01.png")
    """

    def __init__(
        self,
        config: Config,
        *,
        transport: httpx.BaseTransport | None = None,
        base_url: str = API_BASE_URL,
        token_url: str = TOKEN_URL,
    ) -> None:
        """Create a client for *config*.

        Args:
            config: Runtime configuration (tokens, collection, tags)
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
            base_url: REST API root
            token_url: OAuth token endpoint used for refreshes
        """
        self._config = config
        self._access_token = config.access_token
        self._refresh_token = config.refresh_token
        self._token_url = token_url
        self._token_lock = threading.Lock()
        self._client = httpx.Client(
            base_url=base_url,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> RaindropClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying connection pool."""
        self._client.close()

    @property
    def access_token(self) -> str:
        return self._access_token

    # ---- auth ----

    def refresh_access_token(self, rejected_token: str | None = None) -> str:
        """Exchange the refresh token for a new access token.

        Args:
            rejected_token: The access token a caller just saw rejected.  If
                another thread has already replaced it, that newer token is
                returned without another exchange.

        Returns:
            The new access token

        Raises:
            AuthError: If no refresh token is configured or the exchange fails
        """
        with self._token_lock:
            if rejected_token is not None and self._access_token != rejected_token:
                logger.debug("Access token already refreshed by another request")
                return self._access_token
            if not self._refresh_token:
                raise AuthError("No refresh token available")

            payload = {
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token,
            }
            if self._config.client_id:
                payload["client_id"] = self._config.client_id
            if self._config.client_secret:
                payload["client_secret"] = self._config.client_secret

            try:
                response = self._client.post(self._token_url, json=payload)
            except httpx.HTTPError as exc:
                raise AuthError(f"Failed to refresh access token: {exc}") from exc
            if not response.is_success:
                raise AuthError(
                    f"Failed to refresh access token: HTTP {response.status_code} "
                    f"{_error_detail(response)}"
                )
            data = _json_or_empty(response)
            token = data.get("access_token")
            if not token:
                raise AuthError("Token refresh response did not include an access token")
            self._access_token = token
            if data.get("refresh_token"):
                self._refresh_token = data["refresh_token"]

        logger.info("Access token refreshed successfully")
        return token

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, refreshing the token and retrying once on 401.

        Returns the response for any status other than 401; the caller
        decides what counts as success.
        """
        for attempt in range(2):
            sent_token = self._access_token
            headers = {"Authorization": f"Bearer {sent_token}"}
            try:
                response = self._client.request(method, url, headers=headers, **kwargs)
            except httpx.HTTPError as exc:
                raise APIError(f"{method} {url} failed: {exc}") from exc

            if response.status_code != 401:
                return response

            if attempt == 0 and self._refresh_token:
                logger.info("Access token expired, attempting refresh...")
                self.refresh_access_token(rejected_token=sent_token)
                continue
            break

        raise AuthError(f"{method} {url} was rejected as unauthorized (HTTP 401)")

    @staticmethod
    def _raise_for_status(response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        raise APIError(
            f"{what} failed: HTTP {response.status_code} {_error_detail(response)}",
            status_code=response.status_code,
        )

    # ---- account ----

    def test_connection(self) -> UserProfile:
        """Fetch the current user, proving the token works."""
        response = self._request("GET", "/user")
        self._raise_for_status(response, "Connection test")
        user = _json_or_empty(response).get("user")
        if not user:
            raise APIError("Connection test failed: response has no user")
        logger.info("API connection successful")
        return UserProfile.from_api(user)

    def list_collections(self) -> list[Collection]:
        """Return the user's root collections."""
        response = self._request("GET", "/collections")
        self._raise_for_status(response, "Listing collections")
        items = _json_or_empty(response).get("items") or []
        return [Collection.from_api(item) for item in items]

    def get_user_quota(self) -> QuotaSnapshot | None:
        """Return file storage usage, or None when the account reports none."""
        response = self._request("GET", "/user")
        self._raise_for_status(response, "Quota lookup")
        user = _json_or_empty(response).get("user") or {}
        return QuotaSnapshot.from_user(user)

    # ---- raindrops ----

    def upload_file(
        self,
        path: str | Path,
        title: str | None = None,
        excerpt: str | None = None,
    ) -> UploadResult:
        """Upload *path* as a file raindrop.

        Args:
            path: Local file to upload
            title: Raindrop title (default: file name without extension)
            excerpt: Raindrop excerpt (default: "Screenshot taken on <date>")

        Returns:
            The created raindrop

        Raises:
            FileInvalidError, FileSizeLimitError, NoFileError: Known rejections
            UploadError: Any other upload failure
            AuthError: The token was rejected and could not be refreshed
        """
        path = Path(path)
        filename = path.name

        data: dict[str, str] = {}
        if self._config.collection_id:
            data["collection"] = str(self._config.collection_id)
        if self._config.tags:
            data["tags"] = ",".join(self._config.tags)
        data["excerpt"] = excerpt or default_excerpt()
        data["title"] = title or path.stem

        try:
            content = path.read_bytes()
        except OSError as exc:
            raise UploadError(f"Cannot read {filename}: {exc}") from exc

        logger.info("Uploading %s to Raindrop.io...", filename)
        try:
            response = self._request(
                "PUT",
                "/raindrop/file",
                data=data,
                files={"file": (filename, content, guess_mime_type(path))},
            )
        except APIError as exc:
            raise UploadError(f"Upload of {filename} failed: {exc}") from exc

        payload = _json_or_empty(response)
        if not response.is_success or payload.get("result") is False:
            code = payload.get("error")
            if code in _UPLOAD_ERRORS:
                exc_class, message = _UPLOAD_ERRORS[code]
                logger.error("Failed to upload %s: %s", filename, message)
                raise exc_class(message, status_code=response.status_code)
            logger.error(
                "Failed to upload %s: HTTP %d %s",
                filename,
                response.status_code,
                _error_detail(response),
            )
            raise UploadError(
                f"Upload of {filename} failed: HTTP {response.status_code} "
                f"{_error_detail(response)}",
                status_code=response.status_code,
            )

        logger.info("Successfully uploaded %s", filename)
        return UploadResult.from_api(payload.get("item") or {})

    def create_raindrop_from_file(
        self,
        upload: UploadResult,
        title: str | None = None,
        excerpt: str | None = None,
    ) -> UploadResult:
        """Create a link raindrop pointing at an uploaded file.

        The new raindrop goes to the configured collection, falling back to
        the collection the upload landed in.
        """
        collection_id = self._config.collection_id or upload.collection_id
        body: dict[str, Any] = {
            "link": upload.link,
            "title": title or upload.title,
            "excerpt": excerpt or upload.excerpt,
            "tags": list(self._config.tags),
        }
        if collection_id is not None:
            body["collection"] = {"$id": _collection_ref(collection_id)}

        response = self._request("POST", "/raindrop", json=body)
        self._raise_for_status(response, "Creating raindrop")
        logger.info("Created raindrop with file link %s", upload.link)
        return UploadResult.from_api(_json_or_empty(response).get("item") or {})

    def check_duplicate(self, filename: str) -> bool:
        """Return True if a file raindrop titled like *filename* already exists.

        A title matches when it equals the file name with or without its
        extension.  Search failures are logged and reported as "not a
        duplicate" so they never block an upload.
        """
        try:
            response = self._request(
                "GET", "/raindrops/0", params={"search": filename, "type": "file"}
            )
            self._raise_for_status(response, "Duplicate search")
            items = _json_or_empty(response).get("items") or []
        except RaindropError as exc:
            logger.warning("Could not check for duplicates: %s", exc)
            return False

        if not isinstance(items, list):
            logger.warning("Could not check for duplicates: unexpected search reply")
            return False
        stem = Path(filename).stem
        return any(
            isinstance(item, dict) and item.get("title") in (filename, stem)
            for item in items
        )
