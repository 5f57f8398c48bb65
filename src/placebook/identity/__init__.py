"""Device identity - who placed this art."""

from .store import IdentityProvider, USER_ID_KEY, generate_user_id

__all__ = ["IdentityProvider", "USER_ID_KEY", "generate_user_id"]
