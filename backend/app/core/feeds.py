"""
Live feeds over Firestore on_snapshot watches

A feed delivers the full, decoded snapshot on every change. Consumers fold
the latest value into their own state; there is no incremental diffing.
"""
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from google.api_core import exceptions as gcp_exceptions

from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """Handle for a live feed. Call unsubscribe() (or use as a context manager) to stop it."""

    def __init__(self, name: str, watch: Any):
        self.name = name
        self._watch = watch

    @property
    def active(self) -> bool:
        return self._watch is not None

    def unsubscribe(self) -> None:
        if self._watch is None:
            return
        self._watch.unsubscribe()
        self._watch = None
        logger.info(f"Feed {self.name} unsubscribed")

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


def watch(
    name: str,
    target: Any,
    decode: Callable[[list], T],
    on_next: Callable[[T], None],
    on_error: Optional[Callable[[Exception], None]] = None,
) -> Subscription[T]:
    """
    Attach an on_snapshot listener to a query or document reference.

    Args:
        name: Feed name for logging
        target: Firestore query or document reference
        decode: Turns the snapshot list into the value consumers receive
        on_next: Called with every decoded snapshot
        on_error: Called when decoding or the consumer fails

    Raises:
        StoreUnavailableError: If the watch cannot be started
    """

    def _callback(snapshots, _changes, _read_time):
        try:
            on_next(decode(snapshots))
        except Exception as e:
            # Runs on the SDK's watch thread; report instead of killing the stream
            logger.error(f"Feed {name} callback failed: {e}")
            if on_error:
                on_error(e)

    try:
        handle = target.on_snapshot(_callback)
    except gcp_exceptions.GoogleAPICallError as e:
        logger.error(f"Feed {name} could not start: {e}")
        raise StoreUnavailableError(f"Unable to subscribe to {name}: {e.message}")

    logger.info(f"Feed {name} subscribed")
    return Subscription(name, handle)
