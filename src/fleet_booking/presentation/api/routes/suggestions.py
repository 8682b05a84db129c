"""Automatic distribution suggestion endpoints."""

from fastapi import APIRouter

from src.fleet_booking.domain.value_objects.service_type import ServiceType
from src.fleet_booking.infrastructure.services import get_service_factory
from ..schemas.scheduling_schemas import (
    DistributionRequest,
    StaggerRequest,
    SuggestionResponse,
    suggestion_to_response,
)

router = APIRouter()


@router.post("/distribution")
async def suggest_distribution(request: DistributionRequest) -> SuggestionResponse:
    """
    Propose how to spread a fleet over slots of one service.

    The result is advisory; capacity is only taken when bookings are created.
    """
    service = ServiceType.parse(request.service)

    service_factory = get_service_factory()
    async with service_factory.get_suggestion_service() as suggestion_service:
        suggestion = await suggestion_service.suggest_distribution(
            service,
            request.vehicle_count,
            request.target_date,
            [constraint.to_domain() for constraint in request.constraints],
            strict=request.require_complete
        )

    return suggestion_to_response(suggestion)


@router.post("/stagger")
async def suggest_stagger(request: StaggerRequest) -> SuggestionResponse:
    """Propose the next service schedule so each vehicle group follows its previous slot."""
    service = ServiceType.parse(request.service)
    upstream = ServiceType.parse(request.upstream_service) if request.upstream_service else None

    service_factory = get_service_factory()
    async with service_factory.get_suggestion_service() as suggestion_service:
        suggestion = await suggestion_service.suggest_stagger(
            request.appointment_id,
            service,
            request.target_date,
            upstream
        )

    return suggestion_to_response(suggestion)
