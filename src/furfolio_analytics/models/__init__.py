"""
Models package for Furfolio analytics.
"""
from furfolio_analytics.models.domain import (
    BaseDomainModel,
    ServiceType,
    AppointmentStatus,
    Appointment,
    Charge,
    DogOwner,
    PetBehaviorLog,
    LoyaltyRewardType,
    LoyaltyReward,
    LoyaltyAccount
)

__all__ = [
    'BaseDomainModel',
    'ServiceType',
    'AppointmentStatus',
    'Appointment',
    'Charge',
    'DogOwner',
    'PetBehaviorLog',
    'LoyaltyRewardType',
    'LoyaltyReward',
    'LoyaltyAccount'
]
