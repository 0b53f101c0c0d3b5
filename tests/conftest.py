from __future__ import annotations

from types import SimpleNamespace

import pytest
from azure.core.exceptions import HttpResponseError

from aobo_access.control_plane import TargetScope
from aobo_access.errors import NotAuthenticatedError
from aobo_access.principals import Principal, Region

SUB_1 = "11111111-1111-1111-1111-111111111111"
SUB_2 = "22222222-2222-2222-2222-222222222222"
SUB_3 = "33333333-3333-3333-3333-333333333333"
AU_OBJECT_ID = "b1d52de1-30aa-48de-9220-c93f9b6c5711"


class FakeControlPlane:
    """In-memory stand-in for the Azure control plane."""

    def __init__(self, subscriptions=(), authenticated=True):
        self.subscriptions = {s.subscription_id.lower(): s for s in subscriptions}
        self.authenticated = authenticated
        self.assignments = set()
        self.inaccessible = set()
        self.create_errors = {}
        self.empty_create_scopes = set()
        self.find_calls = []
        self.create_calls = []

    def ensure_authenticated(self):
        if not self.authenticated:
            raise NotAuthenticatedError("not signed in")

    def list_accessible_subscriptions(self):
        return list(self.subscriptions.values())

    def get_subscription(self, subscription_id):
        if subscription_id.lower() in self.inaccessible:
            raise HttpResponseError(message="AuthorizationFailed")
        return self.subscriptions.get(subscription_id.lower())

    def find_role_assignment(self, principal_id, scope, role_name):
        self.find_calls.append(scope)
        if (principal_id, scope.lower(), role_name) in self.assignments:
            return SimpleNamespace(id=f"{scope}/providers/Microsoft.Authorization/roleAssignments/existing")
        return None

    def create_role_assignment(self, principal_id, role_name, scope, principal_type):
        self.create_calls.append((principal_id, role_name, scope, principal_type))
        if scope in self.create_errors:
            raise self.create_errors[scope]
        if scope in self.empty_create_scopes:
            return None
        self.assignments.add((principal_id, scope.lower(), role_name))
        return SimpleNamespace(id=f"{scope}/providers/Microsoft.Authorization/roleAssignments/new")


@pytest.fixture()
def au_principal() -> Principal:
    return Principal(Region.AU, AU_OBJECT_ID, "Insight AU")


@pytest.fixture()
def control_plane() -> FakeControlPlane:
    return FakeControlPlane(
        [
            TargetScope(SUB_1, "Production", "Enabled"),
            TargetScope(SUB_2, "Development", "Enabled"),
            TargetScope(SUB_3, "Legacy", "Disabled"),
        ]
    )
