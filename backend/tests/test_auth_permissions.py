from __future__ import annotations

import time
from types import SimpleNamespace
from uuid import uuid4

import pytest
from jose import jwt

from compliance_hub.auth import PermissionChecker, decode_token, principal_from_user
from compliance_hub.config import settings
from compliance_hub.domain_errors import Forbidden, Unauthenticated
from compliance_hub.security import ROLE_PERMISSIONS, check_permission, roles_with_permission

PERMISSION_KEYS = {
    "canManageTasks",
    "canManageEvents",
    "canDeleteData",
    "canViewAudit",
    "canViewResponsibilities",
    "canManageResponsibilities",
    "canViewSuggestions",
    "canReviewSuggestions",
    "canClassifyArtefacts",
    "canManageAgents",
}


def _token(**claims) -> str:
    now = int(time.time())
    payload = {"sub": str(uuid4()), "type": "access", "iat": now, "exp": now + 600}
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.mark.parametrize(
    ("role", "denied"),
    [
        ("SUPER_ADMIN", set()),
        ("ACCOUNT_ADMIN", set()),
        ("USER", {"canDeleteData", "canViewAudit", "canManageResponsibilities", "canReviewSuggestions", "canManageAgents"}),
    ],
)
def test_role_permissions_matrix_is_stable(role: str, denied: set[str]) -> None:
    assert set(ROLE_PERMISSIONS[role]) == PERMISSION_KEYS
    principal = SimpleNamespace(role=role)
    assert {key for key in PERMISSION_KEYS if not check_permission(principal, key)} == denied


def test_unknown_role_has_no_permissions() -> None:
    principal = SimpleNamespace(role="auditor")
    assert not any(check_permission(principal, key) for key in PERMISSION_KEYS)


def test_roles_with_permission_reads_the_matrix() -> None:
    assert roles_with_permission("canManageTasks") == {"SUPER_ADMIN", "ACCOUNT_ADMIN", "USER"}
    assert roles_with_permission("canDeleteData") == {"SUPER_ADMIN", "ACCOUNT_ADMIN"}
    assert roles_with_permission("noSuchPermission") == frozenset()


def test_decode_token_returns_claims_for_valid_token() -> None:
    subject = str(uuid4())
    payload = decode_token(_token(sub=subject))
    assert payload["sub"] == subject


def test_decode_token_rejects_expired_token() -> None:
    expired = int(time.time()) - settings.JWT_LEEWAY_SECONDS - 60
    with pytest.raises(Unauthenticated) as exc:
        decode_token(_token(exp=expired, iat=expired - 600))
    assert exc.value.code == "TOKEN_EXPIRED"
    assert exc.value.http_status == 401


def test_decode_token_tolerates_clock_skew_within_leeway() -> None:
    just_expired = int(time.time()) - 5
    assert decode_token(_token(exp=just_expired))["exp"] == just_expired


def test_decode_token_rejects_token_issued_in_future() -> None:
    future = int(time.time()) + settings.JWT_LEEWAY_SECONDS + 300
    with pytest.raises(Unauthenticated) as exc:
        decode_token(_token(iat=future, exp=future + 600))
    assert exc.value.code == "INVALID_TOKEN"


def test_decode_token_rejects_token_without_exp() -> None:
    token = jwt.encode({"sub": str(uuid4())}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(Unauthenticated, match="Could not validate credentials"):
        decode_token(token)


def test_decode_token_rejects_wrong_signature() -> None:
    now = int(time.time())
    token = jwt.encode({"sub": str(uuid4()), "exp": now + 600}, "another-secret", algorithm="HS256")
    with pytest.raises(Unauthenticated) as exc:
        decode_token(token)
    assert exc.value.code == "INVALID_TOKEN"


def test_principal_from_user_keeps_inactive_flag() -> None:
    user = SimpleNamespace(
        id=uuid4(), role="USER", org_id=uuid4(), is_active=False, email="a@example.com", name="A"
    )
    principal = principal_from_user(user)
    assert principal.organization_id == user.org_id
    assert principal.is_active is False


def test_permission_checker_rejects_role_without_permission() -> None:
    checker = PermissionChecker("canViewAudit")
    principal = principal_from_user(
        SimpleNamespace(id=uuid4(), role="USER", org_id=uuid4(), is_active=True, email="u@example.com", name=None)
    )
    with pytest.raises(Forbidden):
        checker(principal)


def test_permission_checker_passes_principal_through() -> None:
    checker = PermissionChecker("canViewAudit")
    principal = principal_from_user(
        SimpleNamespace(id=uuid4(), role="ACCOUNT_ADMIN", org_id=uuid4(), is_active=True, email="a@example.com", name=None)
    )
    assert checker(principal) is principal
