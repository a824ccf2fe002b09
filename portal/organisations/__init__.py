"""
Organisations Package
Owner-managed case access restrictions and membership change requests.
"""

from portal.organisations.service import AccessRestrictionService, AccessState, BulkAction

__all__ = ["AccessRestrictionService", "AccessState", "BulkAction"]
