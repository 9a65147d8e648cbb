import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from trainhub.dependencies import get_store
from trainhub.domain.errors import StoreError
from trainhub.infra.db import TrainingStore

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.head("/healthz")
async def healthz_head() -> Response:
    return Response(status_code=200)


@router.get("/readyz")
async def readyz(store: TrainingStore = Depends(get_store)) -> JSONResponse:
    try:
        await store.ping()
    except StoreError as exc:
        logger.warning("readiness_check_failed", extra={"extra": {"reason": exc.detail}})
        return JSONResponse(status_code=503, content={"ok": False, "database": {"ok": False}})
    return JSONResponse(status_code=200, content={"ok": True, "database": {"ok": True}})
