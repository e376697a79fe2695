"""Study access group sync.

This module orchestrates one run: it builds the directory and public group
snapshots, streams study access policies from the registry, decides each
study's desired group membership and reconciles it with the group store.

**Feature: study-group-sync**
"""

from __future__ import annotations

from collections.abc import Generator, Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

import config as config_module
from config import get_logger
from directory import DirectoryClient, fetch_directory_membership
from entities import AccessPolicy
from group_store import GroupAdmin
from identity_set import load_identity_set
from membership_resolver import MembershipResolver
from policy_engine import AccessGroupDecision, GroupAction, StudyDecision, make_decision_for_study
from reconciler import Reconciler
from errors import RegistryError
from registry import RegistryClient

logger = get_logger(service="syncer")


@dataclass
class SyncOperationResult:
    """Counters for one sync run."""

    start_time: datetime
    dry_run: bool = False
    end_time: datetime | None = None
    acting_user: str | None = None

    studies_processed: int = 0
    groups_altered: int = 0
    contamination_groups_altered: int = 0
    altered_group_names: list[str] = field(default_factory=list)

    def log_start(self) -> None:
        logger.info(
            "Study group sync started",
            extra={
                "operation": "sync_start",
                "start_time": self.start_time.isoformat(),
                "dry_run": self.dry_run,
            },
        )

    def log_completion(self) -> None:
        duration_ms = None
        if self.end_time:
            duration_ms = int((self.end_time - self.start_time).total_seconds() * 1000)

        logger.debug(f"Altered {self.groups_altered} groups")
        logger.debug(f"Altered {self.contamination_groups_altered} _human groups")
        logger.info(
            self.summary(),
            extra={
                "operation": "sync_complete",
                "start_time": self.start_time.isoformat(),
                "end_time": self.end_time.isoformat() if self.end_time else None,
                "duration_ms": duration_ms,
                "dry_run": self.dry_run,
                "studies_processed": self.studies_processed,
                "groups_altered": self.groups_altered,
                "contamination_groups_altered": self.contamination_groups_altered,
            },
        )

    def summary(self) -> str:
        by_user = f" (by {self.acting_user})" if self.acting_user else ""
        return (
            f"When considering {self.studies_processed} studies, {self.groups_altered} \"ss_*\" groups "
            f"were created or their membership altered, and {self.contamination_groups_altered} "
            f"\"ss_*_human\" groups were created or their membership altered{by_user}"
        )


@dataclass
class SyncContext:
    """Everything one run needs, built once at setup."""

    config: config_module.Config
    resolver: MembershipResolver
    reconciler: Reconciler
    policies: Iterable[AccessPolicy]
    acting_user: str | None = None


def apply_decision(reconciler: Reconciler, decision: AccessGroupDecision) -> bool:
    """Carry out one group decision. Returns whether the group was created or altered."""
    if decision.action is GroupAction.SetMembership:
        return reconciler.apply(decision.group_name, decision.desired_members)
    if decision.action is GroupAction.EnsureExists:
        return reconciler.ensure_group_exists(decision.group_name)
    return False


def tally(result: SyncOperationResult, decision: StudyDecision, primary_changed: bool, contamination_changed: bool) -> None:
    result.studies_processed += 1
    if primary_changed:
        result.groups_altered += 1
        result.altered_group_names.append(decision.primary.group_name)
    if contamination_changed:
        result.contamination_groups_altered += 1
        result.altered_group_names.append(decision.contamination.group_name)


def perform_sync(ctx: SyncContext) -> SyncOperationResult:
    """Decide and reconcile every study's access groups.

    A group store failure propagates and ends the run; groups reconciled for
    earlier studies keep their changes.
    """
    result = SyncOperationResult(
        start_time=datetime.now(timezone.utc),
        dry_run=ctx.reconciler.dry_run,
        acting_user=ctx.acting_user,
    )
    result.log_start()

    try:
        for policy in ctx.policies:
            decision = make_decision_for_study(policy, ctx.resolver, ctx.config)
            primary_changed = apply_decision(ctx.reconciler, decision.primary)
            contamination_changed = apply_decision(ctx.reconciler, decision.contamination)
            tally(result, decision, primary_changed, contamination_changed)
    finally:
        # Releases the registry session when the run stops early
        if isinstance(ctx.policies, Generator):
            ctx.policies.close()

    result.end_time = datetime.now(timezone.utc)
    result.log_completion()
    return result


def _iter_policies(registry: RegistryClient, study_ids: list[str] | None) -> Iterator[AccessPolicy]:
    try:
        yield from registry.iter_access_policies(study_ids)
    finally:
        registry.dispose()


def build_context(
    cfg: config_module.Config,
    *,
    dry_run: bool = False,
    study_ids: list[str] | None = None,
    audit_dropped: bool | None = None,
    group_store: GroupAdmin | None = None,
    directory_client: DirectoryClient | None = None,
    registry: RegistryClient | None = None,
) -> SyncContext:
    """Run the setup step. Directory, registry and public group failures raise here."""
    store = group_store or GroupAdmin(cfg.igroupadmin_command, cfg.ienv_command)
    identities = load_identity_set(store, cfg.public_group_name)
    acting_user = store.user

    directory = fetch_directory_membership(directory_client or DirectoryClient.from_config(cfg))

    registry = registry or RegistryClient.from_url(cfg.registry_database_url)
    try:
        registry.check_connection()
    except RegistryError:
        registry.dispose()
        raise

    resolver = MembershipResolver(
        directory=directory,
        identities=identities,
        audit_dropped=cfg.audit_dropped_identities if audit_dropped is None else audit_dropped,
    )
    return SyncContext(
        config=cfg,
        resolver=resolver,
        reconciler=Reconciler(store, dry_run=dry_run, protected_members=[acting_user]),
        policies=_iter_policies(registry, study_ids),
        acting_user=acting_user,
    )


def run_sync(
    cfg: config_module.Config,
    *,
    dry_run: bool = False,
    study_ids: list[str] | None = None,
    audit_dropped: bool | None = None,
) -> SyncOperationResult:
    ctx = build_context(cfg, dry_run=dry_run, study_ids=study_ids, audit_dropped=audit_dropped)
    return perform_sync(ctx)
