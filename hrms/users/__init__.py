"""Users module — accounts, profiles and the approval lifecycle."""

from hrms.users.models import User

__all__ = ["User"]
