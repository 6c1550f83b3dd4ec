"""Resolution of shared-thread links back to local threads.

A link carries the thread subject and one timestamp. Clocks and rounding
differ between the machine that produced the link and this one, so the
timestamp is matched within a tolerance window rather than exactly.
"""

from collections.abc import Callable
from urllib.parse import parse_qs, urlparse

from thread_sharing.logging import get_logger
from thread_sharing.models import Locator, Thread
from thread_sharing.store import MailStore

logger = get_logger("resolver")

DATE_EPSILON = 60  # Seconds


class InvalidLocator(ValueError):
    """A link does not carry the fields needed to find a thread."""


class ThreadNotFound(LookupError):
    """No local thread matches a link."""

    def __init__(self, subject: str) -> None:
        super().__init__(f"Thread not found: {subject}")
        self.subject = subject


def _parse_epoch(params: dict[str, list[str]], name: str) -> int | None:
    values = params.get(name)
    if not values or not values[0]:
        return None
    try:
        return int(float(values[0]))
    except (ValueError, OverflowError):
        logger.warning("Ignoring unparsable timestamp: field=%s value=%s", name, values[0])
        return None


def parse_open_thread_url(url: str) -> Locator:
    """Parse a link's query string into a Locator.

    Args:
        url: Link with subject, date and/or lastDate query parameters

    Returns:
        Locator for the link

    Raises:
        InvalidLocator: The link has no subject
    """
    params = parse_qs(urlparse(url).query)
    subjects = params.get("subject")
    if not subjects:
        raise InvalidLocator(f"Link has no subject: {url}")

    return Locator(
        subject=subjects[0],
        date=_parse_epoch(params, "date"),
        last_date=_parse_epoch(params, "lastDate"),
    )


def find_corresponding_thread(
    store: MailStore,
    locator: Locator,
    date_epsilon: int = DATE_EPSILON,
) -> Thread:
    """Find the local thread a locator refers to.

    With `date`, the thread's first message time must fall within
    date +/- epsilon. Otherwise `last_date` is matched against both the last
    sent and the last received time, since the link producer could not know
    which of the two it saw. Subjects must match exactly.

    Raises:
        ThreadNotFound: No thread matches
    """
    if locator.date is not None:
        columns = ["first_message_ts"]
        anchor = locator.date
    elif locator.last_date is not None:
        columns = ["last_message_sent_ts", "last_message_received_ts"]
        anchor = locator.last_date
    else:
        raise ThreadNotFound(locator.subject)

    threads = store.find_threads_in_window(
        locator.subject,
        columns,
        anchor - date_epsilon,
        anchor + date_epsilon,
    )
    if not threads:
        raise ThreadNotFound(locator.subject)

    if len(threads) > 1:
        logger.warning(
            "Link matches several threads, using first: subject=%s matches=%d",
            locator.subject,
            len(threads),
        )
    return threads[0]


def not_found_message(subject: str) -> str:
    return f"The thread {subject} does not exist in your mailbox!"


def open_thread_from_url(
    url: str,
    store: MailStore,
    on_open: Callable[[Thread], None],
    on_error: Callable[[Exception, str], None],
    date_epsilon: int = DATE_EPSILON,
) -> Thread | None:
    """Resolve a link and hand the outcome to exactly one callback.

    Args:
        url: Shared-thread link
        store: Mail store to search
        on_open: Receives the resolved thread
        on_error: Receives the error and a user-facing message naming the subject

    Returns:
        The resolved thread, or None if resolution failed
    """
    try:
        locator = parse_open_thread_url(url)
    except InvalidLocator as e:
        on_error(e, "This link does not refer to a thread.")
        return None

    try:
        thread = find_corresponding_thread(store, locator, date_epsilon)
    except ThreadNotFound as e:
        on_error(e, not_found_message(locator.subject))
        return None

    on_open(thread)
    return thread
