"""
New-Location Login Detection
Decides whether a successful login deserves a notification email.
"""

from portal.services.repository import PortalRepository


class LoginLocationDetector:
    """
    Exact-match check against the account's successful-login history.

    Any change of network address or browser counts as new. There is no
    IP-range or geo matching, so the check can over-notify but never misses.
    """

    def __init__(self, repository: PortalRepository):
        self.repository = repository

    async def is_new_location(self, email: str, ip_address: str, user_agent: str) -> bool:
        """Pure read: history is appended by the authentication gate, not here."""
        return await self.repository.is_new_login_location(email, ip_address, user_agent)
