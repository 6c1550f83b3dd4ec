"""Change detection for shared threads."""

from collections.abc import Iterable

from thread_sharing.models import Message

VERSION_SEPARATOR = "|"


def combined_version_hash(messages: Iterable[Message]) -> str:
    """Summarize the content state of a thread's messages.

    Only message versions are read; any content change bumps a message's
    version, so bodies never need hashing. Messages are ordered by id so the
    result does not depend on query order.

    Ids are not part of the result, so swapping a message for a different
    one with the same version in the same sort position goes unnoticed.

    Args:
        messages: Non-hidden messages of one thread

    Returns:
        Versions joined with "|", ordered by message id
    """
    ordered = sorted(messages, key=lambda m: m.id)
    return VERSION_SEPARATOR.join(str(m.version) for m in ordered)
