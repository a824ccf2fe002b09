"""
Models Package
SQLAlchemy ORM models for the application.
"""

from portal.models.user import User
from portal.models.organisation import MembershipRole, Organisation, OrganisationMembership
from portal.models.case import Case
from portal.models.case_access_restriction import CaseAccessRestriction
from portal.models.login_attempt import LoginAttempt
from portal.models.activity import AuditLog, UserActivityLog
from portal.models.token_blacklist import TokenBlacklist

__all__ = [
    "User",
    "MembershipRole",
    "Organisation",
    "OrganisationMembership",
    "Case",
    "CaseAccessRestriction",
    "LoginAttempt",
    "AuditLog",
    "UserActivityLog",
    "TokenBlacklist",
]
