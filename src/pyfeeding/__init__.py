"""pyfeeding - Async Python client for a shared household feeding tracker."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfeeding")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfeeding._constants import CARETAKER_NAMES
from pyfeeding.client import FeedingClient
from pyfeeding.clock import FeedingClock
from pyfeeding.config import FeedingConfig
from pyfeeding.exceptions import (
    FeedingConfigError,
    FeedingError,
    FeedingMalformedValueError,
    FeedingStoreError,
    FeedingTransportError,
)
from pyfeeding.models import FeedingRecord, FeedingSlot, FeedingState, FeedingStatus
from pyfeeding.state.events import EventFeed, FeedAction, FeedChannel, FeedEvent, Subscription
from pyfeeding.state.history import HistoryStore
from pyfeeding.state.policy import ResetPolicy, should_reset
from pyfeeding.state.reconciler import Reconciler

__all__ = [
    "__version__",
    "CARETAKER_NAMES",
    "EventFeed",
    "FeedAction",
    "FeedChannel",
    "FeedEvent",
    "FeedingClient",
    "FeedingClock",
    "FeedingConfig",
    "FeedingConfigError",
    "FeedingError",
    "FeedingMalformedValueError",
    "FeedingRecord",
    "FeedingSlot",
    "FeedingState",
    "FeedingStatus",
    "FeedingStoreError",
    "FeedingTransportError",
    "HistoryStore",
    "Reconciler",
    "ResetPolicy",
    "Subscription",
    "should_reset",
]
