"""IdentitySource port -- who the store should act for."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class IdentitySource(Protocol):
    """Supplies the id of the signed-in user for outbound store calls."""

    def current_user_id(self) -> Optional[str]:
        """Return the signed-in user's id, or None when signed out."""
        ...
