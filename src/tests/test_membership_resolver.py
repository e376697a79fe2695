"""Tests for access string resolution."""

from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

import membership_resolver
from directory_membership import build_directory_membership
from entities import DirectoryGroup
from identity_set import IdentitySet
from membership_resolver import (
    MembershipResolver,
    expand_token,
    find_dropped_identities,
    resolve_tokens,
    split_tokens,
)

from . import strategies
from .conftest import PUBLIC_ACCOUNTS


@pytest.fixture
def directory(directory_groups, primary_groups):
    return build_directory_membership(directory_groups, primary_groups)


@pytest.fixture
def identities():
    return IdentitySet.from_public_members(PUBLIC_ACCOUNTS)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, []),
        ("", []),
        ("   \t\n", []),
        ("groupA", ["groupA"]),
        ("  groupA\talice \n bob ", ["groupA", "alice", "bob"]),
    ],
)
def test_split_tokens(raw, expected):
    assert split_tokens(raw) == expected


def test_group_and_identity_tokens_are_combined():
    directory = build_directory_membership([DirectoryGroup(name="groupA", gid=1, members=frozenset({"bob", "carol"}))], [])
    identities = IdentitySet.from_public_members(["alice#zoneA", "bob#zoneA", "carol#zoneA", "carol#zoneB"])

    assert resolve_tokens("groupA alice", directory, identities) == frozenset(
        {"alice#zoneA", "bob#zoneA", "carol#zoneA", "carol#zoneB"}
    )


def test_group_name_takes_precedence_over_identity(directory, identities):
    # "carol" is both a directory group (members: alice) and a user with public accounts
    assert expand_token("carol", directory) == frozenset({"alice"})
    assert resolve_tokens("carol", directory, identities) == frozenset({"alice#zoneA"})


def test_unknown_token_is_taken_as_identity(directory):
    assert expand_token("dave", directory) == frozenset({"dave"})


def test_identity_without_platform_account_is_dropped(directory, identities):
    # erin is in groupB but has no account in public; nobody is unknown everywhere
    assert resolve_tokens("groupB nobody", directory, identities) == frozenset({"dave#zoneA"})


def test_empty_access_string_resolves_to_nothing(directory, identities):
    assert resolve_tokens("", directory, identities) == frozenset()
    assert resolve_tokens(None, directory, identities) == frozenset()


def test_duplicate_tokens_do_not_duplicate_accounts(directory, identities):
    assert resolve_tokens("alice alice groupA groupA", directory, identities) == frozenset(
        {"alice#zoneA", "bob#zoneA", "carol#zoneA", "carol#zoneB"}
    )


def test_find_dropped_identities(directory, identities):
    assert find_dropped_identities("groupB nobody alice", directory, identities) == frozenset({"erin", "nobody"})


def test_audit_logs_dropped_identities_without_changing_result(directory, identities):
    audited = MembershipResolver(directory=directory, identities=identities, audit_dropped=True)
    silent = MembershipResolver(directory=directory, identities=identities)

    with patch.object(membership_resolver, "logger") as mock_logger:
        audited_result = audited.resolve("groupB nobody", context="Study 1")
        silent_result = silent.resolve("groupB nobody", context="Study 1")

    assert audited_result == silent_result == frozenset({"dave#zoneA"})
    mock_logger.warning.assert_called_once()
    extra = mock_logger.warning.call_args.kwargs["extra"]
    assert extra["dropped_identities"] == ["erin", "nobody"]


def test_audit_is_quiet_when_nothing_is_dropped(directory, identities):
    resolver = MembershipResolver(directory=directory, identities=identities, audit_dropped=True)

    with patch.object(membership_resolver, "logger") as mock_logger:
        resolver.resolve("alice groupA")

    mock_logger.warning.assert_not_called()


@settings(max_examples=100)
@given(
    groups=strategies.directory_groups(),
    accounts=strategies.public_accounts,
    extra_tokens=st.lists(strategies.uid, max_size=5),
    data=st.data(),
)
def test_token_order_does_not_change_result(groups: dict, accounts: frozenset[str], extra_tokens: list[str], data):
    directory = build_directory_membership(
        [DirectoryGroup(name=name, gid=gid, members=members) for name, (gid, members) in groups.items()], []
    )
    identities = IdentitySet.from_public_members(accounts)
    tokens = list(groups)[:3] + extra_tokens

    shuffled = data.draw(st.permutations(tokens))
    raw = data.draw(strategies.access_string(st.just(tokens)))
    raw_shuffled = data.draw(strategies.access_string(st.just(list(shuffled))))

    assert resolve_tokens(raw, directory, identities) == resolve_tokens(raw_shuffled, directory, identities)


@settings(max_examples=100)
@given(accounts=strategies.public_accounts, tokens=st.lists(strategies.uid, max_size=8))
def test_result_is_within_public_accounts(accounts: frozenset[str], tokens: list[str]):
    directory = build_directory_membership([], [])
    identities = IdentitySet.from_public_members(accounts)

    resolved = resolve_tokens(" ".join(tokens), directory, identities)

    assert resolved <= accounts
    assert resolved == frozenset(a for a in accounts if a.split("#", 1)[0] in tokens)
