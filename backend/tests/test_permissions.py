from types import SimpleNamespace

import pytest

from exam_portal.dependencies import ensure_role
from exam_portal.errors import AuthorizationError
from exam_portal.models.user_model import UserRole


def test_allowed_role_passes_through():
    user = SimpleNamespace(role=UserRole.TEACHER)
    assert ensure_role(user, [UserRole.ADMIN, UserRole.TEACHER]) is user


@pytest.mark.parametrize("role", [UserRole.STUDENT, UserRole.TEACHER])
def test_disallowed_role_is_rejected(role):
    with pytest.raises(AuthorizationError) as exc:
        ensure_role(SimpleNamespace(role=role), [UserRole.ADMIN])
    assert exc.value.status_code == 403
    assert exc.value.to_dict() == {"error": "Operation not permitted"}


def test_principal_without_role_is_rejected():
    with pytest.raises(AuthorizationError):
        ensure_role(object(), [UserRole.ADMIN])
