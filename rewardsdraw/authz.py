"""Role and organization checks shared by every drawing workflow."""

from __future__ import annotations

from typing import Optional

from .exceptions import Forbidden
from .models import Drawing, User


def can_manage_org(actor: User, org_id: Optional[int]) -> bool:
    """Return ``True`` when ``actor`` may administer drawings of ``org_id``.

    Super-administrators may act on any organization; administrators only on
    their own. Every other role is refused.
    """
    if actor.is_super_admin:
        return True
    if actor.is_admin:
        return actor.org_id is not None and actor.org_id == org_id
    return False


def ensure_can_manage(actor: User, drawing: Drawing) -> None:
    if not can_manage_org(actor, drawing.org_id):
        raise Forbidden(
            f"User {actor.id} is not allowed to manage drawing {drawing.id}"
        )


def ensure_can_view(actor: User, drawing: Drawing) -> None:
    """Allow super-administrators and any member of the owning organization."""
    if actor.is_super_admin:
        return
    if actor.org_id is not None and actor.org_id == drawing.org_id:
        return
    raise Forbidden(f"User {actor.id} is not allowed to view drawing {drawing.id}")
