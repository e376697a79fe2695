from enum import Enum
from typing import FrozenSet

import config
from entities import AccessPolicy, BaseModel
from membership_resolver import MembershipResolver, split_tokens

logger = config.get_logger("policy_engine")


class GroupAction(Enum):
    SetMembership = "set_membership"
    EnsureExists = "ensure_exists"
    NoAction = "no_action"


class DecisionReason(Enum):
    AccessList = "AccessList"
    PublicFallback = "PublicFallback"
    ManagedWithoutAccessList = "ManagedWithoutAccessList"
    ContaminationAccessList = "ContaminationAccessList"
    ContaminationFlagged = "ContaminationFlagged"
    NotContaminated = "NotContaminated"


class AccessGroupDecision(BaseModel):
    group_name: str
    action: GroupAction
    reason: DecisionReason
    desired_members: FrozenSet[str] = frozenset()


class StudyDecision(BaseModel):
    study_id: str
    primary: AccessGroupDecision
    contamination: AccessGroupDecision


def decide_primary_group(
    policy: AccessPolicy,
    resolver: MembershipResolver,
    group_name: str,
    managed_release_strategy: str = "managed",
) -> AccessGroupDecision:
    if split_tokens(policy.data_access_group):
        return AccessGroupDecision(
            group_name=group_name,
            action=GroupAction.SetMembership,
            reason=DecisionReason.AccessList,
            desired_members=resolver.resolve(policy.data_access_group, context=f"Study {policy.study_id}"),
        )
    if not policy.is_managed(managed_release_strategy):
        return AccessGroupDecision(
            group_name=group_name,
            action=GroupAction.SetMembership,
            reason=DecisionReason.PublicFallback,
            desired_members=resolver.public_accounts,
        )
    return AccessGroupDecision(
        group_name=group_name,
        action=GroupAction.SetMembership,
        reason=DecisionReason.ManagedWithoutAccessList,
    )


def decide_contamination_group(
    policy: AccessPolicy,
    resolver: MembershipResolver,
    group_name: str,
) -> AccessGroupDecision:
    # Contamination groups never fall back to public membership
    if split_tokens(policy.contaminated_human_data_access_group):
        return AccessGroupDecision(
            group_name=group_name,
            action=GroupAction.SetMembership,
            reason=DecisionReason.ContaminationAccessList,
            desired_members=resolver.resolve(
                policy.contaminated_human_data_access_group,
                context=f"Study {policy.study_id} contaminated human data",
            ),
        )
    if policy.contaminated_human_dna:
        return AccessGroupDecision(
            group_name=group_name,
            action=GroupAction.EnsureExists,
            reason=DecisionReason.ContaminationFlagged,
        )
    return AccessGroupDecision(
        group_name=group_name,
        action=GroupAction.NoAction,
        reason=DecisionReason.NotContaminated,
    )


def make_decision_for_study(
    policy: AccessPolicy,
    resolver: MembershipResolver,
    cfg: config.Config,
) -> StudyDecision:
    logger.debug(
        f"Working on study {policy.study_id}, data access: '{policy.data_access_group or ''}', "
        f"contaminated human data access: '{policy.contaminated_human_data_access_group or ''}'"
    )
    decision = StudyDecision(
        study_id=policy.study_id,
        primary=decide_primary_group(
            policy,
            resolver,
            cfg.primary_group_name(policy.study_id),
            cfg.managed_release_strategy,
        ),
        contamination=decide_contamination_group(
            policy,
            resolver,
            cfg.contamination_group_name(policy.study_id),
        ),
    )

    logger.info(
        f"Study {policy.study_id} has {len(decision.primary.desired_members)} members",
        extra={"reason": decision.primary.reason},
    )
    logger.debug(f"Members: {', '.join(sorted(decision.primary.desired_members))}")
    logger.info(
        f"Study {policy.study_id} has {len(decision.contamination.desired_members)} contaminated human data access members",
        extra={"reason": decision.contamination.reason, "action": decision.contamination.action},
    )
    logger.debug(f"Contaminated human data access members: {', '.join(sorted(decision.contamination.desired_members))}")
    return decision
