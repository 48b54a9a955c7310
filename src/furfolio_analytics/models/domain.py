"""
Domain model definitions using Pydantic models.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


class ServiceType(str, Enum):
    """Grooming service offered by the business."""
    FULL_GROOM = "full_groom"
    BASIC_BATH = "basic_bath"
    NAIL_TRIM = "nail_trim"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return _SERVICE_DISPLAY_NAMES[self]


_SERVICE_DISPLAY_NAMES = {
    ServiceType.FULL_GROOM: "Full Groom",
    ServiceType.BASIC_BATH: "Basic Bath",
    ServiceType.NAIL_TRIM: "Nail Trim",
    ServiceType.CUSTOM: "Custom",
}


class AppointmentStatus(str, Enum):
    """Lifecycle state of an appointment."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    IN_PROGRESS = "in_progress"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def counts_as_visit(self) -> bool:
        """Whether the owner actually showed up (or is booked to)."""
        return self not in (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


class BaseDomainModel(BaseModel):
    """Base class for all domain records."""
    id: str = Field(default_factory=lambda: str(uuid4()))

    model_config = {"populate_by_name": True, "frozen": True}


class Appointment(BaseDomainModel):
    """Appointment entity (scheduled grooming visit)."""
    owner_id: str
    dog_id: Optional[str] = None
    date: datetime
    service_type: ServiceType = ServiceType.CUSTOM
    duration_minutes: Optional[int] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None

    @field_validator("duration_minutes")
    @classmethod
    def _non_negative_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("duration_minutes must be >= 0")
        return value


class Charge(BaseDomainModel):
    """Charge entity (money collected for a service)."""
    date: datetime
    amount: float
    service_type: ServiceType = ServiceType.CUSTOM
    appointment_id: Optional[str] = None
    owner_id: Optional[str] = None
    notes: Optional[str] = None


class PetBehaviorLog(BaseDomainModel):
    """Free-text behavior note recorded for a dog."""
    note: str
    date_logged: datetime
    dog_id: Optional[str] = None
    owner_id: Optional[str] = None
    appointment_id: Optional[str] = None


class DogOwner(BaseDomainModel):
    """Dog owner entity (customer) with their appointment history."""
    owner_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    appointments: List[Appointment] = Field(default_factory=list)

    @property
    def visit_dates(self) -> List[datetime]:
        """Sorted dates of appointments the owner attended or is booked for."""
        return sorted(a.date for a in self.appointments if a.status.counts_as_visit)

    @property
    def last_appointment_date(self) -> Optional[datetime]:
        dates = self.visit_dates
        return dates[-1] if dates else None

    def visits_before(self, now: datetime) -> List[datetime]:
        """Visit dates up to and including ``now``; later bookings have not happened yet."""
        return [d for d in self.visit_dates if d <= now]

    def last_visit_before(self, now: datetime) -> Optional[datetime]:
        visits = self.visits_before(now)
        return visits[-1] if visits else None

    @property
    def first_appointment_date(self) -> Optional[datetime]:
        dates = self.visit_dates
        return dates[0] if dates else None

    @property
    def completed_appointments(self) -> List[Appointment]:
        return [a for a in self.appointments if a.status == AppointmentStatus.COMPLETED]

    @property
    def average_appointment_interval(self) -> Optional[float]:
        """Average number of days between visits, None with fewer than two visits."""
        dates = self.visit_dates
        if len(dates) < 2:
            return None
        intervals = [
            (later - earlier).total_seconds() / 86400
            for earlier, later in zip(dates, dates[1:])
        ]
        return sum(intervals) / len(intervals)


class LoyaltyRewardType(str, Enum):
    """Kind of reward an owner can redeem."""
    FREE_BATH = "free_bath"
    DISCOUNT = "discount"
    FREE_NAIL_TRIM = "free_nail_trim"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        if self == LoyaltyRewardType.CUSTOM:
            return "Custom Reward"
        return self.value.replace("_", " ").title()


class LoyaltyReward(BaseDomainModel):
    """A redeemed loyalty reward."""
    reward_type: LoyaltyRewardType
    date: datetime
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None


class LoyaltyAccount(BaseDomainModel):
    """
    Loyalty program state of a single owner.

    Accounts are frozen; the loyalty engine returns updated copies.
    """
    owner_id: str
    points: int = 0
    visit_count: int = 0
    total_spent: float = 0.0
    rewards_redeemed: List[LoyaltyReward] = Field(default_factory=list)
    last_reward_date: Optional[datetime] = None
