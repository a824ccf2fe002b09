"""
Organisation Owner Schemas
Request and response models for the access-restriction screens.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from portal.organisations.service import BulkAction


class ToggleRestrictionRequest(BaseModel):
    user_id: UUID = Field(..., description="Member to restrict or allow")
    case_id: UUID = Field(..., description="Case within the organisation")


class BulkMemberRestrictionRequest(BaseModel):
    user_id: UUID = Field(..., description="Member the action applies to")
    action: BulkAction = Field(..., description="restrict-all or allow-all")


class BulkCaseRestrictionRequest(BaseModel):
    case_id: UUID = Field(..., description="Case the action applies to")
    action: BulkAction = Field(..., description="restrict-all or allow-all")


class MembershipChangeRequest(BaseModel):
    """Body shared by the three request-only workflows."""

    user_id: UUID = Field(..., description="Target member")
    reason: Optional[str] = Field(None, max_length=2000, description="Optional explanation for Acclaim")


class OwnershipsResponse(BaseModel):
    organisation_ids: list[UUID] = Field(default_factory=list)


class MemberSummary(BaseModel):
    id: UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str

    model_config = {"from_attributes": True}


class CaseSummary(BaseModel):
    id: UUID
    account_number: str
    debtor_name: str
    status: str
    assigned_to: Optional[str] = None

    model_config = {"from_attributes": True}


class RestrictionPair(BaseModel):
    user_id: UUID
    case_id: UUID


class RestrictionsResponse(BaseModel):
    restrictions: list[RestrictionPair] = Field(default_factory=list)


class ToggleRestrictionResponse(BaseModel):
    user_id: UUID
    case_id: UUID
    restricted: bool = Field(..., description="New state of the cell")


class BulkRestrictionResponse(BaseModel):
    action: BulkAction
    updated: int = Field(..., description="Number of cells written")


class RequestAcceptedResponse(BaseModel):
    message: str
    request_type: str
