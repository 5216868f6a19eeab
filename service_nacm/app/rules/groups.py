"""
Group membership resolution.
"""

from typing import FrozenSet

from .models import PolicySnapshot


def resolve_groups(snapshot: PolicySnapshot, user: str) -> FrozenSet[str]:
    """Return the names of every group listing ``user`` as a member."""
    return frozenset(
        name for name, group in snapshot.groups.items()
        if group.has_member(user)
    )
