from timebank.core.users.repository import UserRepository

__all__ = ["UserRepository"]
