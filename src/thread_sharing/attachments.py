"""Local attachment cache lookups."""

import re
from pathlib import Path

from thread_sharing.models import File

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')


def safe_display_name(file: File) -> str:
    """Display name with path separators and reserved characters replaced."""
    return _UNSAFE_CHARS.sub("-", file.display_name())


class AttachmentStore:
    """Resolves attachment files in the download cache.

    Layout: <root>/<id[0:2]>/<id[2:4]>/<id>/<safe display name>
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    def path_for_file(self, file: File) -> Path:
        file_id = file.id.lower()
        return self._root / file_id[0:2] / file_id[2:4] / file.id / safe_display_name(file)

    def read_bytes(self, file: File) -> bytes:
        """Read an attachment's content.

        Returns:
            File content, or empty bytes when the file was never downloaded
        """
        path = self.path_for_file(file)
        if not path.exists():
            return b""
        return path.read_bytes()
