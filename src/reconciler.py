"""Reconciliation of group store membership with a desired member set.

Computing the difference and applying it are separate steps: the diff is a
pure function of the current and desired sets, and the Reconciler only
executes it (or, in dry-run mode, logs what it would execute).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from config import get_logger

logger = get_logger(service="reconciler")


class GroupStore(Protocol):
    def group_exists(self, group_name: str) -> bool: ...

    def list_group(self, group_name: str) -> list[str]: ...

    def make_group(self, group_name: str) -> None: ...

    def add_member(self, group_name: str, account: str) -> None: ...

    def remove_member(self, group_name: str, account: str) -> None: ...


@dataclass(frozen=True)
class MembershipChange:
    """Operations that bring one group to its desired membership.

    Attributes:
        group_name: The group store group.
        create: Whether the group has to be created first.
        to_add: Accounts to add.
        to_remove: Accounts to remove.
    """

    group_name: str
    create: bool
    to_add: frozenset[str]
    to_remove: frozenset[str]

    @property
    def changed(self) -> bool:
        return self.create or bool(self.to_add) or bool(self.to_remove)


def compute_membership_change(
    group_name: str,
    current_members: Iterable[str] | None,
    desired_members: Iterable[str],
    protected_members: Iterable[str] = (),
) -> MembershipChange:
    """Diff current against desired membership as sets.

    Args:
        group_name: The group being reconciled.
        current_members: Current members, or None when the group does not exist.
        desired_members: Desired members; duplicates are ignored.
        protected_members: Accounts never removed, even when not desired. These
            are the group creators, who are already members of a new group.

    Returns:
        MembershipChange describing the minimal set of operations.
    """
    desired = frozenset(desired_members)
    protected = frozenset(protected_members)
    if current_members is None:
        return MembershipChange(group_name=group_name, create=True, to_add=desired - protected, to_remove=frozenset())

    current = frozenset(current_members)
    return MembershipChange(
        group_name=group_name,
        create=False,
        to_add=desired - current,
        to_remove=current - desired - protected,
    )


class Reconciler:
    """Applies membership changes to a group store.

    Args:
        store: The group store client.
        dry_run: When set, changes are computed and logged but not made.
        protected_members: Accounts never removed from any group, such as
            the acting group administrator, who becomes a member of every
            group it creates.
    """

    def __init__(self, store: GroupStore, dry_run: bool = False, protected_members: Iterable[str] = ()) -> None:
        self._store = store
        self.dry_run = dry_run
        self.protected_members = frozenset(protected_members)

    def _current_members(self, group_name: str) -> frozenset[str] | None:
        if not self._store.group_exists(group_name):
            return None
        return frozenset(self._store.list_group(group_name))

    def plan(self, group_name: str, desired_members: Iterable[str]) -> MembershipChange:
        return compute_membership_change(
            group_name,
            self._current_members(group_name),
            desired_members,
            self.protected_members,
        )

    def execute(self, change: MembershipChange) -> None:
        prefix = "Would" if self.dry_run else "Will"
        extra = {"operation": "reconcile", "group_name": change.group_name, "dry_run": self.dry_run}

        if change.create:
            logger.info(f"{prefix} create group '{change.group_name}'", extra=extra)
            if not self.dry_run:
                self._store.make_group(change.group_name)
        for account in sorted(change.to_remove):
            logger.info(f"{prefix} remove '{account}' from group '{change.group_name}'", extra=extra)
            if not self.dry_run:
                self._store.remove_member(change.group_name, account)
        for account in sorted(change.to_add):
            logger.info(f"{prefix} add '{account}' to group '{change.group_name}'", extra=extra)
            if not self.dry_run:
                self._store.add_member(change.group_name, account)

    def apply(self, group_name: str, desired_members: Iterable[str]) -> bool:
        """Bring a group's membership to the desired set, creating the group if needed.

        Returns:
            True if the group was created or any member added or removed.
        """
        change = self.plan(group_name, desired_members)
        self.execute(change)
        if not change.changed:
            logger.debug(f"Group '{group_name}' is up to date")
        return change.changed

    def ensure_group_exists(self, group_name: str) -> bool:
        """Create a group with no members if absent. Existing membership is left alone.

        Returns:
            True if the group was (or in dry-run mode would be) created.
        """
        if self._store.group_exists(group_name):
            return False
        self.execute(MembershipChange(group_name=group_name, create=True, to_add=frozenset(), to_remove=frozenset()))
        return True
