from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire format is camelCase (what the mobile client sends); attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --------------------------
# Shared Submodels
# --------------------------
class GeoPoint(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ClothingItem(CamelModel):
    type: str = Field(..., min_length=1)
    size: str = Field(..., min_length=1)
    color: str = Field(..., min_length=1)
    gender: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    images: List[str] = Field(..., min_length=1)


class ToyItem(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    condition: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    images: List[str] = Field(..., min_length=1)


# --------------------------
# Donations
# --------------------------
class DonationIn(CamelModel):
    user_id: Optional[str] = None
    donation_type: Optional[str] = None
    clothing_items: Optional[List[ClothingItem]] = None
    toy_items: Optional[List[ToyItem]] = None


class DonationUpdate(CamelModel):
    status: Optional[str] = None
    pickup_date: Optional[datetime] = None
    pickup_address: Optional[str] = None
    pickup_notes: Optional[str] = None


class PickupLocation(CamelModel):
    type: Literal["gps", "manual"]
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    # manual entry
    city: Optional[str] = None
    street: Optional[str] = None
    apartment: Optional[str] = None


class ScheduleIn(CamelModel):
    donation_id: Optional[str] = None
    user_id: Optional[str] = None
    pickup_date: Optional[datetime] = None
    location: PickupLocation
    delivery_message: Optional[str] = None
    phone_number: Optional[str] = None


# --------------------------
# Users & Auth
# --------------------------
UserType = Literal["donor", "driver"]


class SignupIn(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    security_question: Optional[str] = None
    security_answer: Optional[str] = None
    user_type: UserType = "donor"


class LoginIn(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class PasswordResetRequest(CamelModel):
    email: str


class SecurityAnswerIn(CamelModel):
    email: str
    answer: str


class ResetPasswordIn(CamelModel):
    reset_token: str
    new_password: str


class AddressIn(CamelModel):
    user_id: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone_number: Optional[str] = None
    address_notes: Optional[str] = None


class DriverLocationIn(GeoPoint):
    pass


# --------------------------
# Leaderboard
# --------------------------
class LeaderboardEntry(CamelModel):
    rank: int
    name: str
    points: int
    profile_image: Optional[str] = None
    user_type: UserType = "donor"


class LeaderboardOut(CamelModel):
    success: bool = True
    leaderboard: List[LeaderboardEntry]
