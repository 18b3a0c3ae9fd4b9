"""ctxlocal - context-local storage for asyncio, with an isolation verifier."""

from .shared import SharedSlotStore
from .store import ContextStore

__version__ = "0.1.0"

__all__ = ["ContextStore", "SharedSlotStore", "__version__"]
