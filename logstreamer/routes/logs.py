from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from stdforward import ConsumerExistsError, InterceptionError, as_stream, get_stream

from logstreamer.config import get_settings
from logstreamer.models.events import ConsumersResponse, EmitRequest
from logstreamer.services.log_stream import generate_client_id, parse_streams
from logstreamer.services.state import log_stream_service


router = APIRouter()


@router.get("/stream")
async def stream_logs(
    streams: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None, min_length=1, max_length=128),
):
    settings = get_settings()
    try:
        selected = parse_streams(streams if streams is not None else settings.default_streams)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        subscription = log_stream_service.subscribe(client_id or generate_client_id(), selected)
    except ConsumerExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except InterceptionError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    # Runs even when the generator never started.
    return StreamingResponse(
        log_stream_service.stream_events(subscription),
        background=BackgroundTask(log_stream_service.unsubscribe, subscription),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Client-Id": subscription.client_id,
        },
    )


@router.get("/consumers", response_model=ConsumersResponse)
async def list_consumers() -> ConsumersResponse:
    return ConsumersResponse(items=log_stream_service.list_consumers())


@router.post("/emit")
async def emit(payload: EmitRequest):
    settings = get_settings()
    if not settings.enable_emit:
        raise HTTPException(status_code=404, detail="Not Found")
    try:
        stream = as_stream(payload.stream)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    handle = get_stream(stream)
    handle.write(payload.message)
    handle.flush()
    return {"stream": stream.value, "length": len(payload.message)}
