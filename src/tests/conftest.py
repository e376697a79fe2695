import os

import pytest

from entities import AccessPolicy, DirectoryGroup, PrimaryGroupAssociation

from .utils import FakeGroupStore, FakeRegistry


def pytest_sessionstart(session):  # noqa: ANN201, ARG001, ANN001
    mock_env = {
        "registry_database_url": "sqlite://",
        "ldap_host": "ldap.test",
        "log_level": "DEBUG",
        "audit_dropped_identities": "false",
    }
    os.environ |= mock_env


PUBLIC_ACCOUNTS = [
    "alice#zoneA",
    "bob#zoneA",
    "carol#zoneA",
    "carol#zoneB",
    "dave#zoneA",
    "irodsadmin#zoneA",
]


@pytest.fixture
def directory_groups() -> list[DirectoryGroup]:
    return [
        DirectoryGroup(name="groupA", gid=1001, members=frozenset({"bob"})),
        DirectoryGroup(name="groupB", gid=1002, members=frozenset({"dave", "erin"})),
        DirectoryGroup(name="carol", gid=1003, members=frozenset({"alice"})),
    ]


@pytest.fixture
def primary_groups() -> list[PrimaryGroupAssociation]:
    return [
        PrimaryGroupAssociation(uid="carol", gid=1001),
        PrimaryGroupAssociation(uid="bob", gid=1001),
        PrimaryGroupAssociation(uid="frank", gid=9999),
    ]


@pytest.fixture
def group_store() -> FakeGroupStore:
    return FakeGroupStore(groups={"public": PUBLIC_ACCOUNTS}, user="irodsadmin#zoneA")


@pytest.fixture
def policies() -> list[AccessPolicy]:
    return [
        AccessPolicy(study_id="P123", data_access_group="groupA alice", data_release_strategy="managed"),
        AccessPolicy(study_id="P456", data_access_group="", data_release_strategy="managed"),
        AccessPolicy(study_id="P789", data_access_group=None, data_release_strategy="open"),
        AccessPolicy(
            study_id="P900",
            data_access_group="groupB",
            data_release_strategy="managed",
            contaminated_human_data_access_group="dave nobody",
            contaminated_human_dna=True,
        ),
        AccessPolicy(study_id="P901", data_access_group="alice", contaminated_human_dna=True),
    ]


@pytest.fixture
def registry(policies: list[AccessPolicy]) -> FakeRegistry:
    return FakeRegistry(policies)
