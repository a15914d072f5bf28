"""Read-only multiplier query endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from crash_engine.api.v1.dependencies import RoundStoreDep
from crash_engine.core.settings import settings
from crash_engine.schemas.round import RoundResponse, RoundSummary
from crash_engine.services.round_store import RoundStoreError

router = APIRouter(prefix="/multipliers", tags=["multipliers"])


def _store_failure(exc: RoundStoreError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=list[RoundSummary])
def list_multipliers(
    store: RoundStoreDep,
    from_round: Annotated[int | None, Query(alias="from")] = None,
    to_round: Annotated[int | None, Query(alias="to")] = None,
) -> list[RoundSummary]:
    """Return rounds in ``[from, to]`` ordered by round number.

    Args:
        store: Round persistence facade
        from_round: First round number, inclusive
        to_round: Last round number, inclusive

    Returns:
        Rounds that exist in the range; missing rounds are simply absent
    """
    if from_round is None or to_round is None or from_round > to_round:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid range")
    if to_round - from_round + 1 > settings.max_range_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Range exceeds {settings.max_range_size} rounds",
        )
    try:
        rounds = store.get_range(from_round, to_round)
    except RoundStoreError as exc:
        raise _store_failure(exc) from exc
    return [RoundSummary(round_number=r.round_number, multiplier=r.multiplier) for r in rounds]


@router.get("/current", response_model=RoundResponse)
def get_current_multiplier(store: RoundStoreDep) -> RoundResponse:
    """Return the most recently inserted round."""
    try:
        latest = store.get_latest()
    except RoundStoreError as exc:
        raise _store_failure(exc) from exc
    if latest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return RoundResponse.model_validate(latest)


@router.get("/{round_number}", response_model=RoundSummary)
def get_multiplier(round_number: int, store: RoundStoreDep) -> RoundSummary:
    """Return the multiplier for a single round."""
    try:
        found = store.get_by_round(round_number)
    except RoundStoreError as exc:
        raise _store_failure(exc) from exc
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return RoundSummary(round_number=found.round_number, multiplier=found.multiplier)
