"""Service type enumeration."""

from enum import Enum
from typing import List

from src.fleet_booking.domain.exceptions import InvalidInputError


class ServiceType(Enum):
    """Sequential services offered at the portal, in processing order."""

    WEIGHING = "weighing"
    INSPECTION = "inspection"
    REGISTRATION = "registration"

    @property
    def display_name(self) -> str:
        """Get the customer-facing service name."""
        names = {
            ServiceType.WEIGHING: "Vehicle Weighing",
            ServiceType.INSPECTION: "Vehicle Inspection",
            ServiceType.REGISTRATION: "Vehicle Registration/Customer Service Center",
        }
        return names[self]

    @property
    def position(self) -> int:
        """Get the position of the service in the processing order."""
        return SERVICE_ORDER.index(self)

    def previous(self) -> "ServiceType | None":
        """Get the service that must be completed before this one."""
        if self.position == 0:
            return None
        return SERVICE_ORDER[self.position - 1]

    @classmethod
    def parse(cls, value: "str | ServiceType") -> "ServiceType":
        """Resolve a short code or display name to a service type."""
        if isinstance(value, ServiceType):
            return value
        if not value or not value.strip():
            raise InvalidInputError("Service name is required")

        normalized = value.strip()
        for service in cls:
            if normalized.lower() == service.value or normalized == service.display_name:
                return service
        raise InvalidInputError(f"Unknown service: {value}")


SERVICE_ORDER: List[ServiceType] = [
    ServiceType.WEIGHING,
    ServiceType.INSPECTION,
    ServiceType.REGISTRATION,
]
