"""Change-notification feed.

Writes to the state and history tables are announced on two channels.
Delivery is advisory: a local write and the remote echo of that same
write may arrive in any order, so subscribers must tolerate re-applying
the same row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_logger = logging.getLogger(__name__)


class FeedChannel(StrEnum):
    STATE = "state"
    HISTORY = "history"


class FeedAction(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class FeedEvent(BaseModel):
    """A row change announced on the feed."""

    model_config = ConfigDict(frozen=True)

    channel: FeedChannel
    action: FeedAction
    row: dict[str, Any] = Field(default_factory=dict, description="Full row after the change")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def date(self) -> str | None:
        value = self.row.get("date")
        return value if isinstance(value, str) else None


FeedCallback = Callable[[FeedEvent], None]
DateFilter = str | Callable[[], str] | None


class Subscription:
    """Handle returned by :meth:`EventFeed.subscribe`.

    Can be used as a context manager to unsubscribe on exit.
    """

    def __init__(
        self,
        feed: EventFeed,
        channel: FeedChannel,
        callback: FeedCallback,
        date: DateFilter = None,
    ) -> None:
        self._feed = feed
        self.channel = channel
        self._callback = callback
        self._date = date
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: FeedEvent) -> bool:
        if not self._active or event.channel != self.channel:
            return False
        if self._date is None:
            return True
        wanted = self._date() if callable(self._date) else self._date
        return event.date == wanted

    def deliver(self, event: FeedEvent) -> None:
        self._callback(event)

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self)  # noqa: SLF001

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unsubscribe()


class EventFeed:
    """In-process publish/subscribe hub for row changes."""

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        channel: FeedChannel,
        callback: FeedCallback,
        *,
        date: DateFilter = None,
    ) -> Subscription:
        """Register *callback* for *channel*.

        *date* restricts delivery to rows with that ``date``; pass a
        callable (e.g. ``clock.today_id``) to follow the current day.
        """
        subscription = Subscription(self, channel, callback, date)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: FeedEvent) -> int:
        """Deliver *event* to matching subscribers; return how many got it."""
        delivered = 0
        # Iterate a snapshot: callbacks may unsubscribe while being called.
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                subscription.deliver(event)
            except Exception:
                _logger.exception("Feed subscriber failed for %s %s event", event.channel, event.action)
                continue
            delivered += 1
        return delivered
