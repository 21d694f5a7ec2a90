"""Copy out run routes."""

from __future__ import annotations

from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Path
from fastapi.responses import JSONResponse

from elsa_copy_out.api.dependencies import get_copy_out_service
from elsa_copy_out.application.services import CopyOutService
from elsa_copy_out.domain.errors import CopyOutRunNotFoundError, CopyOutValidationError
from elsa_copy_out.domain.invocation_models import CopyOutRunListResponse, CopyOutRunResponse

router = APIRouter(tags=["copy out"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, CopyOutRunNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, CopyOutValidationError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected copy out error")


@router.post(
    "/copy-out/runs",
    status_code=202,
    response_model=CopyOutRunResponse,
    responses={202: {"model": CopyOutRunResponse}, 400: {"description": "Bad request"}},
)
async def start_copy_out_run(
    payload: dict[str, Any] = Body(...),
    service: CopyOutService = Depends(get_copy_out_service),
) -> JSONResponse:
    """Validate an invocation and start the run in the background."""

    try:
        run = await service.start(payload)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)

    body = service.run_response(run)
    return JSONResponse(
        status_code=202,
        content=body.model_dump(by_alias=True, mode="json"),
        headers={"Location": run.status_path},
    )


@router.get("/copy-out/runs", response_model=CopyOutRunListResponse)
async def list_copy_out_runs(
    service: CopyOutService = Depends(get_copy_out_service),
) -> CopyOutRunListResponse:
    """List runs known to this service instance."""

    return await service.list_runs()


@router.get(
    "/copy-out/runs/{run_id}",
    response_model=CopyOutRunResponse,
    responses={404: {"description": "Run not found"}},
)
async def get_copy_out_run(
    run_id: str = Path(...),
    service: CopyOutService = Depends(get_copy_out_service),
) -> CopyOutRunResponse:
    """Return the state and, once finished, the result of one run."""

    try:
        return await service.get_run_info(run_id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)


__all__ = ["router"]
