"""Merged directory group membership.

A user belongs to a directory group either by being listed as a member of it
or by having it as their primary group. This module folds both sources into
one read-only snapshot that is built once per run.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from config import get_logger
from entities import DirectoryGroup, PrimaryGroupAssociation

logger = get_logger(service="directory_membership")


@dataclass(frozen=True)
class DirectoryMembership:
    """Immutable mapping of directory group name to its merged member identities."""

    groups: Mapping[str, frozenset[str]]

    def members_of(self, group_name: str) -> frozenset[str] | None:
        """Members of a group, or None if no directory group has that name."""
        return self.groups.get(group_name)

    def __contains__(self, group_name: object) -> bool:
        return group_name in self.groups

    def __iter__(self) -> Iterator[str]:
        return iter(self.groups)

    def __len__(self) -> int:
        return len(self.groups)


def build_directory_membership(
    groups: Iterable[DirectoryGroup],
    associations: Iterable[PrimaryGroupAssociation],
) -> DirectoryMembership:
    """Merge direct group members with primary group associations.

    Args:
        groups: Directory groups with their direct members.
        associations: Each identity's primary group id.

    Returns:
        DirectoryMembership snapshot. Associations whose gid matches no group
        are dropped; when two groups share a gid the later one wins.
    """
    members: dict[str, set[str]] = {}
    gid_to_group: dict[int, str] = {}
    for group in groups:
        members[group.name] = set(group.members)
        gid_to_group[group.gid] = group.name

    unmatched = 0
    for association in associations:
        group_name = gid_to_group.get(association.gid)
        # Some accounts carry a gidNumber that is not a group
        if group_name is None:
            unmatched += 1
            continue
        members[group_name].add(association.uid)

    if unmatched:
        logger.debug(f"{unmatched} primary group associations did not match any directory group")

    merged = {name: frozenset(uids) for name, uids in members.items()}
    for name in sorted(merged):
        logger.debug(f"Group '{name}' membership {', '.join(sorted(merged[name]))}")

    return DirectoryMembership(groups=MappingProxyType(merged))
