from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID


# ============================================
# Request Schemas
# ============================================

class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str


class SignInRequest(BaseModel):
    email: EmailStr
    password: str


class VerificationSendRequest(BaseModel):
    email: EmailStr


class VerificationCheckRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1, max_length=12)


class RedeemPointsRequest(BaseModel):
    amount: int
    description: str
    user_id: Optional[UUID] = None  # Defaults to the caller; other users need admin
    idempotency_key: Optional[str] = Field(default=None, max_length=100)


class AddPointsRequest(BaseModel):
    amount: int
    description: str
    user_id: Optional[UUID] = None  # Defaults to the caller; other users need admin


class AdminAddPointsRequest(BaseModel):
    email: EmailStr
    amount: int
    description: Optional[str] = None  # Defaults to a localized admin note


class RewardCreate(BaseModel):
    name: str
    points_cost: int


class RewardRedeemRequest(BaseModel):
    idempotency_key: Optional[str] = Field(default=None, max_length=100)


# ============================================
# Resource Schemas
# ============================================

class ProfileResponse(BaseModel):
    id: str
    email: str
    name: str = ""
    points: int
    is_admin: bool = False
    created_at: Optional[datetime] = None


class TransactionResponse(BaseModel):
    id: str
    type: str  # "earn" | "redeem"
    amount: int  # Signed: negative for redeem
    description: str
    created_at: Optional[datetime] = None


class RewardResponse(BaseModel):
    id: str
    name: str
    points_cost: int
    created_at: Optional[datetime] = None


class RedeemerProfile(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None


class RedemptionTransaction(BaseModel):
    id: str
    user_id: str
    amount: int
    description: str
    created_at: Optional[datetime] = None
    profile: Optional[RedeemerProfile] = None


class RedemptionResponse(BaseModel):
    id: str
    code: str
    transaction_id: str
    reward_id: Optional[str] = None
    status: str  # "pending" | "fulfilled"
    created_at: Optional[datetime] = None
    fulfilled_at: Optional[datetime] = None
    transaction: Optional[RedemptionTransaction] = None
    reward: Optional[RewardResponse] = None


# ============================================
# Action Results
# ============================================

class ActionResult(BaseModel):
    """Structured outcome of every user-facing operation.

    Callers must check ``success`` before reading any data field.
    """
    success: bool
    message: str
    error: Optional[str] = None  # Error kind, e.g. "insufficient_points"


class SessionResult(ActionResult):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user_id: Optional[str] = None


class ProfileResult(ActionResult):
    profile: Optional[ProfileResponse] = None
    recent_activity: List[TransactionResponse] = []


class RedeemResult(ActionResult):
    new_points: Optional[int] = None
    transaction_id: Optional[str] = None
    reward_code: Optional[str] = None


class AddPointsResult(ActionResult):
    new_points: Optional[int] = None
    transaction_id: Optional[str] = None


class UsersResult(ActionResult):
    users: List[ProfileResponse] = []


class RedemptionsResult(ActionResult):
    redemptions: List[RedemptionResponse] = []


class RewardResult(ActionResult):
    reward: Optional[RewardResponse] = None


class RewardsResult(ActionResult):
    rewards: List[RewardResponse] = []
