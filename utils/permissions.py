from typing import Optional

from models import Role


def is_admin(actor: dict) -> bool:
    return actor.get("role") == Role.ADMIN.value


def can_act_for(actor: dict, owner_id: Optional[str]) -> bool:
    """Admins may act on anything; everyone else only on what they own."""
    if is_admin(actor):
        return True
    return owner_id is not None and str(owner_id) == actor.get("id")
