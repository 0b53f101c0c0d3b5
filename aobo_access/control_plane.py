"""
Thin adapter over the Azure control plane used by the batch assigner.

Only four capabilities are consumed: listing the subscriptions the signed-in
identity can see, looking one up by id, finding an existing role assignment,
and creating one. Everything else stays in the Azure SDK.
"""

from __future__ import annotations

import logging
import uuid
from collections import namedtuple
from typing import Dict, List, Optional

from azure.core.exceptions import ClientAuthenticationError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.mgmt.authorization import AuthorizationManagementClient
from azure.mgmt.authorization.models import RoleAssignmentCreateParameters
from azure.mgmt.resource import SubscriptionClient

from aobo_access.errors import NotAuthenticatedError

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"

TargetScope = namedtuple("TargetScope", ["subscription_id", "name", "state"])


def subscription_scope(subscription_id: str) -> str:
    return f"/subscriptions/{subscription_id}"


def get_subscription_id_from_scope(scope):
    if not scope:
        return None
    parts = scope.split("/")
    # parts = ['', 'subscriptions', '{id}', ...]
    if len(parts) > 2 and parts[1].lower() == "subscriptions":
        return parts[2]
    return None


def normalize_role_def_id(role_def_id: str) -> str:
    # Assignments carry the full resource id of the role definition; compare on the trailing GUID.
    if role_def_id is None:
        return ""
    return role_def_id.rstrip().split("/")[-1].lower()


def _scope_covers(assignment_scope, scope) -> bool:
    """True when an assignment at assignment_scope applies to scope as a whole."""
    if assignment_scope is None:
        return False
    assigned = assignment_scope.rstrip("/").lower()
    target = scope.rstrip("/").lower()
    # root "/" or a management group sits above every subscription
    return (
        assigned == target
        or assigned == ""
        or assigned.startswith("/providers/microsoft.management/managementgroups/")
    )


def _state_name(state) -> Optional[str]:
    if state is None:
        return None
    return getattr(state, "value", str(state))


def _to_target_scope(subscription) -> TargetScope:
    return TargetScope(
        subscription.subscription_id,
        subscription.display_name,
        _state_name(subscription.state),
    )


class AzureControlPlane:
    def __init__(self, credential=None):
        self.credential = credential or DefaultAzureCredential()
        self._subscription_client = None
        self._auth_clients: Dict[str, AuthorizationManagementClient] = {}
        self._role_definition_cache: Dict[tuple, str] = {}

    def ensure_authenticated(self):
        """Fail fast when no Azure session is available."""
        try:
            self.credential.get_token(MANAGEMENT_SCOPE)
        except ClientAuthenticationError as e:
            raise NotAuthenticatedError(
                f"Could not authenticate to Azure. Sign in with 'az login' first. ({e})"
            ) from e

    @property
    def subscription_client(self) -> SubscriptionClient:
        if self._subscription_client is None:
            self._subscription_client = SubscriptionClient(self.credential)
        return self._subscription_client

    def _authorization_client(self, scope: str) -> AuthorizationManagementClient:
        subscription_id = get_subscription_id_from_scope(scope)
        if not subscription_id:
            raise ValueError(f"Scope {scope} is not a subscription scope")
        if subscription_id not in self._auth_clients:
            self._auth_clients[subscription_id] = AuthorizationManagementClient(
                self.credential, subscription_id
            )
        return self._auth_clients[subscription_id]

    def list_accessible_subscriptions(self) -> List[TargetScope]:
        logger.info("Listing subscriptions accessible to the signed-in identity...")
        return [_to_target_scope(s) for s in self.subscription_client.subscriptions.list()]

    def get_subscription(self, subscription_id: str) -> Optional[TargetScope]:
        """Return the subscription, or None when it does not exist."""
        try:
            subscription = self.subscription_client.subscriptions.get(subscription_id)
        except ResourceNotFoundError:
            logger.debug("Subscription %s not found", subscription_id)
            return None
        return _to_target_scope(subscription)

    def get_role_definition_id(self, scope: str, role_name: str) -> str:
        key = (scope.lower(), role_name.lower())
        if key in self._role_definition_cache:
            return self._role_definition_cache[key]

        client = self._authorization_client(scope)
        definitions = list(
            client.role_definitions.list(scope, filter=f"roleName eq '{role_name}'")
        )
        if not definitions:
            raise ValueError(f"Role '{role_name}' not found at scope {scope}")
        self._role_definition_cache[key] = definitions[0].id
        return definitions[0].id

    def find_role_assignment(self, principal_id: str, scope: str, role_name: str):
        role_definition_id = normalize_role_def_id(
            self.get_role_definition_id(scope, role_name)
        )
        client = self._authorization_client(scope)
        # the principalId filter also returns assignments below the scope, e.g. on resource groups
        for assignment in client.role_assignments.list_for_scope(
            scope, filter=f"principalId eq '{principal_id}'"
        ):
            if normalize_role_def_id(assignment.role_definition_id) != role_definition_id:
                continue
            if _scope_covers(getattr(assignment, "scope", None), scope):
                return assignment
        return None

    def create_role_assignment(
        self, principal_id: str, role_name: str, scope: str, principal_type: str
    ):
        parameters = RoleAssignmentCreateParameters(
            role_definition_id=self.get_role_definition_id(scope, role_name),
            principal_id=principal_id,
            principal_type=principal_type,
        )
        logger.debug(
            "Creating '%s' assignment for %s (%s) on %s",
            role_name,
            principal_id,
            principal_type,
            scope,
        )
        return self._authorization_client(scope).role_assignments.create(
            scope, str(uuid.uuid4()), parameters
        )
