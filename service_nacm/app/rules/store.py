"""
Atomic publication of policy snapshots.
"""

import threading
from typing import Optional

from access_shared.errors import PolicyConstructionError
from .models import PolicySnapshot


class PolicyStore:
    """Holds the currently published ``PolicySnapshot``.

    A new snapshot is built off to the side and then swapped in as a single
    reference assignment, so readers see either the old or the new snapshot
    in full. Readers never lock; only concurrent publishers serialize.
    """

    def __init__(self, snapshot: Optional[PolicySnapshot] = None):
        self._lock = threading.Lock()
        self._snapshot: Optional[PolicySnapshot] = None
        self._version = 0
        if snapshot is not None:
            self.publish(snapshot)

    def publish(self, snapshot: PolicySnapshot) -> int:
        """Swap in ``snapshot`` and return the new version number."""
        if not isinstance(snapshot, PolicySnapshot):
            raise PolicyConstructionError(
                "Only PolicySnapshot instances can be published",
                {"type": type(snapshot).__name__}
            )
        with self._lock:
            self._snapshot = snapshot
            self._version += 1
            return self._version

    def current(self) -> Optional[PolicySnapshot]:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version
