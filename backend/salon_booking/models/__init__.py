from .tables import (
    Base,
    BlockedDates,
    BookingStatus,
    Bookings,
    ServiceVariants,
    Services,
    SlotHolds,
    Staff,
    StaffSchedule,
    Tenants,
    WorkingHours,
    metadata,
)

__all__ = [
    "Base",
    "BlockedDates",
    "BookingStatus",
    "Bookings",
    "ServiceVariants",
    "Services",
    "SlotHolds",
    "Staff",
    "StaffSchedule",
    "Tenants",
    "WorkingHours",
    "metadata",
]
