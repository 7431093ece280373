from src.impersonate.models.user import User

__all__ = ["User"]
