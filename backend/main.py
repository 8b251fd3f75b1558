import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

import db
from auth import api_key_gate
from errors import (
    ConflictError,
    EventStoreError,
    PartitionKeyMissingError,
    StoreError,
    ValidationError,
)
from models import EventIn
from queries import EventQueryBuilder
from repo_events import EventRepo
from service_events import EventService
from settings import settings

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared Cosmos client on startup and close it on shutdown."""
    logger.info("Event store backend starting up...")
    container = db.open_container()
    app.state.event_service = EventService(
        EventRepo(container),
        EventQueryBuilder(default_range=timedelta(minutes=settings.default_range_minutes)),
    )
    yield
    logger.info("Event store backend shutting down...")
    await db.close()


app = FastAPI(lifespan=lifespan, title="Particle Event Store")
app.middleware("http")(api_key_gate)


def get_event_service(request: Request) -> EventService:
    # Routes stay thin; tests override this dependency with a fake-backed service.
    return request.app.state.event_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(EventStoreError)
async def event_store_error_handler(request: Request, exc: EventStoreError):
    if isinstance(exc, ValidationError):
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
        return _error(400, str(exc))
    if isinstance(exc, ConflictError):
        logger.warning(f"Conflict on {request.method} {request.url.path}: {exc}")
        return _error(409, str(exc))
    if isinstance(exc, StoreError):
        logger.error(f"Store failure on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return _error(500, "Event store request failed.")
    if isinstance(exc, PartitionKeyMissingError):
        logger.error(f"Partition key missing on {request.url.path}: {exc}", exc_info=exc)
    return _error(500, str(exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _error(500, "Internal server error.")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid request: {where}: {first.get('msg')}"
    else:
        message = "Invalid request."
    logger.warning(f"Rejected {request.method} {request.url.path}: {message}")
    return _error(400, message)


@app.get("/health")
async def health(svc: EventService = Depends(get_event_service)):
    try:
        await svc.health_check()
        return {"ok": True}
    except StoreError as e:
        logger.error(f"DB health check failed: {e}")
        return _error(500, "DB health check failed.")


@app.post("/api/cosmos", status_code=204)
async def ingest(payload: EventIn, svc: EventService = Depends(get_event_service)):
    await svc.ingest(payload)
    return Response(status_code=204)


@app.get("/api/cosmos/event-data")
async def event_data(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    event_name: Optional[str] = Query(None, alias="eventName"),
    svc: EventService = Depends(get_event_service),
):
    return await svc.event_data(device_id, user_id, event_name)


@app.get("/api/cosmos/event-range")
async def event_range(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    svc: EventService = Depends(get_event_service),
):
    return await svc.event_range(device_id, start_date, end_date)


@app.get("/api/cosmos/field-data")
async def field_data(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    field: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    svc: EventService = Depends(get_event_service),
):
    return await svc.field_data(device_id, field, start_date, end_date)


@app.get("/api/cosmos/items")
async def all_items(svc: EventService = Depends(get_event_service)):
    return [e.to_document() for e in await svc.all_events()]


@app.get("/api/cosmos/items/{item_id}")
async def get_item(
    item_id: str,
    device_id: Optional[str] = Query(None, alias="deviceId"),
    svc: EventService = Depends(get_event_service),
):
    event = await svc.get_event(item_id, device_id)
    if event is None:
        return _error(404, f"Event {item_id} not found.")
    return event.to_document()


if __name__ == "__main__":
    # Local development only; deploy with `uvicorn main:app --host 0.0.0.0 --port 8000`
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
