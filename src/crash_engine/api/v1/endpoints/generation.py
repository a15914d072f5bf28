"""Generation status and control endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from crash_engine.api.v1.dependencies import ControllerDep, SocketClientDep
from crash_engine.schemas.generation import TriggerResponse
from crash_engine.services.batch_controller import GenerationOutcome, GenerationResult
from crash_engine.services.notifier import NotifierError

router = APIRouter(prefix="/generation", tags=["generation"])


def _to_response(result: GenerationResult) -> TriggerResponse:
    return TriggerResponse(
        success=result.success,
        outcome=result.outcome.value,
        message=result.message,
        start_round=result.start_round,
        end_round=result.end_round,
        notified=result.notified,
    )


@router.get("/status")
async def get_queue_status(
    controller: ControllerDep, socket_client: SocketClientDep
) -> dict[str, object]:
    """Report generation state alongside a live probe of the socket server queue.

    Args:
        controller: Batch controller owning generation state
        socket_client: Socket server client used for the live probe

    Returns:
        Dictionary with the backend snapshot and the socket server's queue view
    """
    snapshot = controller.status()
    try:
        health = await socket_client.fetch_health()
        socket_status: dict[str, object] = {
            "reachable": True,
            "queueSize": health.queue_size,
            "gamePhase": health.game_phase,
            "currentRound": health.current_round,
        }
    except NotifierError as e:
        socket_status = {"reachable": False, "error": str(e)}

    return {
        "success": True,
        "backend": snapshot.as_dict(),
        "socket": socket_status,
        "metrics": socket_client.metrics.as_dict(),
    }


@router.post("/trigger", response_model=TriggerResponse)
async def trigger_generation(controller: ControllerDep) -> TriggerResponse:
    """Re-run the queue depth check and generate a batch if the queue is low."""
    return _to_response(await controller.tick())


@router.post("/force", response_model=TriggerResponse)
async def force_generation(controller: ControllerDep) -> TriggerResponse:
    """Generate a batch immediately, skipping the queue depth check."""
    result = await controller.force_generate()
    if result.outcome is GenerationOutcome.BUSY:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    return _to_response(result)
