"""Auth provider collaborator."""

from chatpulse.auth.base import AuthProvider, SessionCallback
from chatpulse.auth.memory import InMemoryAuthProvider

__all__ = ["AuthProvider", "InMemoryAuthProvider", "SessionCallback"]
