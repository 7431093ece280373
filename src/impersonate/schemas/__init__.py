from src.impersonate.schemas.impersonation import ImpersonationStatus

__all__ = ["ImpersonationStatus"]
