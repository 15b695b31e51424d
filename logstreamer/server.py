import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import stdforward

from logstreamer.config import get_settings
from logstreamer.routes import debug, logs

settings = get_settings()

# Bound to the real stderr so our own log records never travel through the
# intercepted pipe.
logging.basicConfig(
    level=settings.log_level,
    stream=sys.__stderr__ or sys.stderr,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
stdforward.configure(read_size=settings.read_size)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    stdforward.shutdown()


app = FastAPI(
    title="Log Stream API",
    version="1.0.0",
    description="Streams the daemon's stdout and stderr to remote clients",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(logs.router, prefix="/api/logs", tags=["logs"])
app.include_router(debug.router, prefix="/api/debug", tags=["debug"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
