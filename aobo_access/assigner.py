"""
Idempotent batch role assignment.

Each subscription goes through the same three steps: the state gate, the
check for an existing assignment, and the create call. Every subscription
produces exactly one AssignmentOutcome and a failure on one never stops the
next one from being processed. Re-running the batch is safe: subscriptions
that already have the assignment come back as ALREADY_ASSIGNED.
"""

from __future__ import annotations

import logging
from collections import namedtuple
from enum import Enum
from typing import Iterable, List

from azure.core.exceptions import ResourceExistsError

from aobo_access.control_plane import TargetScope, subscription_scope

logger = logging.getLogger(__name__)

OWNER_ROLE = "Owner"
# AOBO groups live in the partner tenant
PRINCIPAL_TYPE_HINT = "ForeignGroup"

ACTIVE_STATES = frozenset({"enabled", "active"})
DISABLED_STATE = "disabled"


class OutcomeStatus(str, Enum):
    ASSIGNED = "Assigned"
    ALREADY_ASSIGNED = "AlreadyAssigned"
    SKIPPED = "Skipped"
    DISABLED = "Disabled"
    FAILED = "Failed"


# detail is the skip reason for SKIPPED, the error message for FAILED and the
# assignment id for ASSIGNED/ALREADY_ASSIGNED when the service returns one.
AssignmentOutcome = namedtuple("AssignmentOutcome", ["target", "status", "detail"])


class BatchRoleAssigner:
    def __init__(
        self,
        control_plane,
        principal,
        role_name: str = OWNER_ROLE,
        principal_type: str = PRINCIPAL_TYPE_HINT,
        dry_run: bool = False,
    ):
        self.control_plane = control_plane
        self.principal = principal
        self.role_name = role_name
        self.principal_type = principal_type
        self.dry_run = dry_run

    def _gate_state(self, target: TargetScope):
        state = (target.state or "").strip()
        if not state or state.lower() in ACTIVE_STATES:
            return None
        if state.lower() == DISABLED_STATE:
            return AssignmentOutcome(target, OutcomeStatus.DISABLED, state)
        return AssignmentOutcome(target, OutcomeStatus.SKIPPED, state)

    def _ensure_assignment(self, target: TargetScope) -> AssignmentOutcome:
        scope = subscription_scope(target.subscription_id)
        principal_id = self.principal.object_id

        existing = self.control_plane.find_role_assignment(principal_id, scope, self.role_name)
        if existing is not None:
            return AssignmentOutcome(
                target, OutcomeStatus.ALREADY_ASSIGNED, getattr(existing, "id", None)
            )

        if self.dry_run:
            return AssignmentOutcome(target, OutcomeStatus.SKIPPED, "dry run")

        try:
            created = self.control_plane.create_role_assignment(
                principal_id, self.role_name, scope, self.principal_type
            )
        except ResourceExistsError:
            return AssignmentOutcome(target, OutcomeStatus.ALREADY_ASSIGNED, None)

        if not created:
            return AssignmentOutcome(target, OutcomeStatus.FAILED, "empty result")
        return AssignmentOutcome(target, OutcomeStatus.ASSIGNED, getattr(created, "id", None))

    def assign(self, target: TargetScope) -> AssignmentOutcome:
        """Process one subscription. Never raises for per-subscription errors."""
        outcome = self._gate_state(target)
        if outcome is None:
            try:
                outcome = self._ensure_assignment(target)
            except Exception as e:
                outcome = AssignmentOutcome(target, OutcomeStatus.FAILED, str(e) or type(e).__name__)

        self._log_outcome(outcome)
        return outcome

    def run(self, targets: Iterable[TargetScope]) -> List[AssignmentOutcome]:
        targets = list(targets)
        logger.info(
            f"Granting '{self.role_name}' to {self.principal.display_name} "
            f"({self.principal.object_id}) on {len(targets)} subscription(s)"
            + (" [dry run]" if self.dry_run else "")
        )
        return [self.assign(target) for target in targets]

    def _log_outcome(self, outcome: AssignmentOutcome):
        target = outcome.target
        label = f"{target.name} ({target.subscription_id})" if target.name else target.subscription_id
        status = outcome.status
        if status is OutcomeStatus.ASSIGNED:
            logger.info(f"Assigned '{self.role_name}' on {label}")
        elif status is OutcomeStatus.ALREADY_ASSIGNED:
            logger.info(f"'{self.role_name}' already assigned on {label}. No action needed.")
        elif status is OutcomeStatus.DISABLED:
            logger.info(f"Subscription {label} is disabled. Skipping.")
        elif status is OutcomeStatus.SKIPPED:
            logger.info(f"Skipping {label}: {outcome.detail}")
        else:
            logger.error(f"Failed to assign '{self.role_name}' on {label}: {outcome.detail}")
