"""Client for the remote static asset API."""

from typing import Self

import httpx

from thread_sharing.config import ApiConfig
from thread_sharing.logging import get_logger

logger = get_logger("api")

UPLOAD_PATH = "/api/save-public-asset"


class UploadFailed(Exception):
    """The asset API did not accept an upload."""


class StaticAssetClient:
    """Posts public assets (attachments and JSON documents) and returns their URLs."""

    def __init__(self, config: ApiConfig, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize client with API configuration.

        Args:
            config: ApiConfig with endpoint, credentials and timeout
            transport: Optional httpx transport (used in tests)
        """
        self._config = config
        headers = {}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._client = httpx.Client(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def post_static_asset(
        self,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload bytes under a filename.

        Posting to a filename that already exists replaces its content, which
        is how snapshots and tombstones overwrite an earlier share.

        Args:
            filename: Remote path of the asset
            data: Payload bytes
            content_type: MIME type of the payload

        Returns:
            Public URL of the uploaded asset

        Raises:
            UploadFailed: On transport errors, timeouts, error responses,
                or a response without a link
        """
        try:
            response = self._client.post(
                UPLOAD_PATH,
                files={"file": (filename, data, content_type)},
                data={"filename": filename},
            )
            response.raise_for_status()
            link = response.json().get("link")
        except (httpx.HTTPError, ValueError) as e:
            raise UploadFailed(f"Upload of {filename} failed: {e}") from e

        if not link:
            raise UploadFailed(f"Upload of {filename} returned no link")

        logger.debug("Uploaded asset: filename=%s bytes=%d", filename, len(data))
        return link

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        self.close()
