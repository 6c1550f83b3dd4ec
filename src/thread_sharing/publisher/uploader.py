"""Attachment uploads for shared threads."""

from collections.abc import Iterable

from thread_sharing.api import StaticAssetClient, UploadFailed
from thread_sharing.attachments import AttachmentStore
from thread_sharing.logging import get_logger
from thread_sharing.models import File

logger = get_logger("uploader")


class AssetUnavailable(Exception):
    """An attachment's content is not in the local cache."""


class AssetUploader:
    """Uploads attachments that have no public URL yet."""

    def __init__(self, client: StaticAssetClient, attachments: AttachmentStore) -> None:
        self._client = client
        self._attachments = attachments

    def ensure_uploaded(self, file: File, already_uploaded: set[str] | dict[str, str]) -> str | None:
        """Upload a single attachment unless it already has a URL.

        Args:
            file: Attachment to upload
            already_uploaded: Ids of attachments that have a URL

        Returns:
            URL of the new upload, or None if the file was already uploaded

        Raises:
            AssetUnavailable: The file is missing, empty or unreadable on disk
            UploadFailed: The API rejected the upload
        """
        if file.id in already_uploaded:
            return None

        try:
            data = self._attachments.read_bytes(file)
        except OSError as e:
            raise AssetUnavailable(f"File {self._attachments.path_for_file(file)} could not be read: {e}") from e
        if len(data) == 0:
            raise AssetUnavailable(f"File {self._attachments.path_for_file(file)} is not on disk.")

        return self._client.post_static_asset(
            filename=f"{file.id}/{file.display_name()}",
            data=data,
            content_type="application/octet-stream",
        )

    def upload_missing(self, files: Iterable[File], file_urls: dict[str, str]) -> dict[str, str]:
        """Upload every attachment missing from file_urls.

        A failure on one file is logged and the remaining files are still
        attempted.

        Args:
            files: Attachments of a thread (duplicates are uploaded once)
            file_urls: Existing id -> URL mappings, not modified

        Returns:
            Mappings for the files uploaded by this call
        """
        uploaded: dict[str, str] = {}
        seen: set[str] = set()

        for file in files:
            if file.id in seen or file.id in file_urls:
                continue
            seen.add(file.id)

            try:
                link = self.ensure_uploaded(file, file_urls)
            except (AssetUnavailable, UploadFailed) as e:
                logger.warning("Could not upload attachment %s: %s", file.display_name(), e)
                continue

            if link:
                uploaded[file.id] = link

        if uploaded:
            logger.info("Uploaded attachments: count=%d", len(uploaded))
        return uploaded
