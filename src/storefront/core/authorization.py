"""Authorization collaborator.

The order state machine only asks one question ("is this actor an
admin?") and treats the answer as a precondition.  Role storage lives
elsewhere; the default implementation reads Django's ``is_staff`` flag.
"""

from __future__ import annotations

from typing import Optional, Protocol

from django.contrib.auth import get_user_model


class IAuthorizer(Protocol):
    """Answers admin checks for an explicit actor id."""

    def is_admin(self, actor_id: Optional[str]) -> bool: ...


class DjangoStaffAuthorizer:
    """Admin == active Django user with ``is_staff``."""

    def is_admin(self, actor_id: Optional[str]) -> bool:
        if not actor_id:
            return False
        user_model = get_user_model()
        try:
            return user_model.objects.filter(
                pk=actor_id, is_active=True, is_staff=True
            ).exists()
        except (ValueError, TypeError):
            return False
