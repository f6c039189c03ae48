"""Client side of bug synchronization: gateway, store and change events."""

from .gateway import BugGateway
from .store import BugStore
from .events import StoreEvents
from .result import Ok, Err, Result

__all__ = ["BugGateway", "BugStore", "StoreEvents", "Ok", "Err", "Result"]
