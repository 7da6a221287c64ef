from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from gift_reveal.api.deps import CurrentUserDep
from gift_reveal.core.audit import AuditAction, audit_clock_action
from gift_reveal.core.clock import OverridableClock, get_overridable_clock
from gift_reveal.schemas.home import ClockOverrideRequest, ClockStateOut, ClockStepRequest


router = APIRouter(prefix="/clock", tags=["clock"])

OverridableClockDep = Annotated[OverridableClock, Depends(get_overridable_clock)]


@router.get("", response_model=ClockStateOut)
async def clock_state(clock: OverridableClockDep) -> ClockStateOut:
    return ClockStateOut.model_validate(clock.state())


@router.put("/override", response_model=ClockStateOut)
async def override_clock(
    payload: ClockOverrideRequest,
    request: Request,
    clock: OverridableClockDep,
    current_user: CurrentUserDep,
) -> ClockStateOut:
    pinned = clock.override(payload.at)
    audit_clock_action(AuditAction.CLOCK_OVERRIDE, request, current_user.id, {"at": pinned.isoformat()})
    return ClockStateOut.model_validate(clock.state())


@router.post("/step", response_model=ClockStateOut)
async def step_clock(
    payload: ClockStepRequest,
    request: Request,
    clock: OverridableClockDep,
    current_user: CurrentUserDep,
) -> ClockStateOut:
    pinned = clock.step(timedelta(seconds=payload.seconds))
    audit_clock_action(
        AuditAction.CLOCK_STEP,
        request,
        current_user.id,
        {"seconds": payload.seconds, "at": pinned.isoformat()},
    )
    return ClockStateOut.model_validate(clock.state())


@router.delete("/override", response_model=ClockStateOut)
async def clear_clock_override(
    request: Request,
    clock: OverridableClockDep,
    current_user: CurrentUserDep,
) -> ClockStateOut:
    clock.clear()
    audit_clock_action(AuditAction.CLOCK_CLEAR, request, current_user.id)
    return ClockStateOut.model_validate(clock.state())
