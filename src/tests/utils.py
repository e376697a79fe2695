from collections.abc import Iterable, Iterator

from entities import AccessPolicy
from errors import GroupStoreError


class FakeGroupStore:
    """In-memory group store that records every call it receives."""

    def __init__(self, groups: dict[str, Iterable[str]] | None = None, user: str = "irodsadmin#zoneA") -> None:
        self.groups: dict[str, set[str]] = {name: set(members) for name, members in (groups or {}).items()}
        self.user = user
        self.calls: list[tuple[str, ...]] = []

    def group_exists(self, group_name: str) -> bool:
        self.calls.append(("group_exists", group_name))
        return group_name in self.groups

    def list_group(self, group_name: str) -> list[str]:
        self.calls.append(("list_group", group_name))
        return sorted(self.groups.get(group_name, set()))

    def make_group(self, group_name: str) -> None:
        self.calls.append(("make_group", group_name))
        # The creating group administrator becomes a member
        self.groups[group_name] = {self.user}

    def add_member(self, group_name: str, account: str) -> None:
        self.calls.append(("add_member", group_name, account))
        # igroupadmin atg refuses an existing member
        if account in self.groups[group_name]:
            raise GroupStoreError(f"CATALOG_ALREADY_HAS_ITEM_BY_THAT_NAME: '{account}' in '{group_name}'")
        self.groups[group_name].add(account)

    def remove_member(self, group_name: str, account: str) -> None:
        self.calls.append(("remove_member", group_name, account))
        if account not in self.groups[group_name]:
            raise GroupStoreError(f"CAT_INVALID_USER: '{account}' is not in '{group_name}'")
        self.groups[group_name].remove(account)

    def calls_for(self, group_name: str) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[1] == group_name]

    def mutating_calls(self) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[0] in ("make_group", "add_member", "remove_member")]

    def snapshot(self) -> dict[str, frozenset[str]]:
        return {name: frozenset(members) for name, members in self.groups.items()}


class FakeRegistry:
    def __init__(self, policies: list[AccessPolicy], connection_error: Exception | None = None) -> None:
        self.policies = policies
        self.connection_error = connection_error
        self.disposed = False

    def check_connection(self) -> None:
        if self.connection_error is not None:
            raise self.connection_error

    def iter_access_policies(self, study_ids: Iterable[str] | None = None) -> Iterator[AccessPolicy]:
        wanted = None if study_ids is None else {str(study_id) for study_id in study_ids}
        for policy in sorted(self.policies, key=lambda p: p.study_id):
            if wanted is None or policy.study_id in wanted:
                yield policy

    def dispose(self) -> None:
        self.disposed = True
