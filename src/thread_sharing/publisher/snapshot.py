"""Remote document for a shared thread."""

import json
from typing import Any

from thread_sharing.models import Identity, Message, SharingMetadata, Thread
from thread_sharing.quoting import remove_quoted_html

TOMBSTONE: dict[str, Any] = {"shared": False}


def build_snapshot(
    thread: Thread,
    messages: list[Message],
    metadata: SharingMetadata,
    identity: Identity,
) -> dict[str, Any]:
    """Assemble the document the web viewer renders for a shared thread.

    Quoted replies are removed from each body, except where the body is
    nothing but a quote.
    """
    return {
        "thread": thread.to_json(),
        "sharedBy": {
            "firstName": identity.first_name,
            "lastName": identity.last_name,
            "emailAddress": identity.email_address,
        },
        "fileURLs": dict(metadata.file_urls),
        "messages": [
            {
                **message.to_json(),
                "body": remove_quoted_html(message.body, keep_if_whole_body_is_quote=True),
            }
            for message in messages
            if not message.is_hidden()
        ],
    }


def serialize_snapshot(document: dict[str, Any]) -> bytes:
    return json.dumps(document, ensure_ascii=False).encode("utf-8")
