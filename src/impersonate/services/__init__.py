from src.impersonate.services.impersonate_manager import ImpersonateManager, ImpersonationResult
from src.impersonate.services.redirects import RedirectResolver

__all__ = ["ImpersonateManager", "ImpersonationResult", "RedirectResolver"]
