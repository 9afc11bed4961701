"""Storage backends implementing the state and history contracts."""

from pyfeeding.backends.file import FileHistoryBackend, FileStateStore
from pyfeeding.backends.memory import MemoryHistoryBackend, MemoryStateStore
from pyfeeding.backends.rest import RestHistoryBackend, RestStateStore

__all__ = [
    "FileHistoryBackend",
    "FileStateStore",
    "MemoryHistoryBackend",
    "MemoryStateStore",
    "RestHistoryBackend",
    "RestStateStore",
]
