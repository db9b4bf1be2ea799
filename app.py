from fastapi import FastAPI, WebSocket, WebSocketDisconnect, Depends
from fastapi.middleware.cors import CORSMiddleware
from routers.links import links_router, get_link_backend
from backend import LinkBackend
from channel import Subscription
from constants import ALLOWED_ORIGINS
from schemas.links import LinkUpdatedMessage
from logging_config import get_logger, setup_logging
import asyncio
import os

# Setup logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE", None)
setup_logging(log_level=log_level, log_file=log_file)
logger = get_logger(__name__)

app = FastAPI(title="Secure Link Manager")

# Only the desktop shell's own pages may call the local API
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)

app.include_router(links_router)

logger.info("FastAPI application initialized")


@app.get("/health")
async def health():
    return {"status": "ok"}


async def forward_link_changes(websocket: WebSocket, subscription: Subscription):
    """Background task: push every ChangeEvent from the channel to one display surface."""
    loop = asyncio.get_running_loop()
    try:
        while not subscription.closed:
            # Blocking queue read in the thread pool, with a timeout so closing is noticed
            event = await loop.run_in_executor(None, subscription.get, 1.0)
            if event is None:
                continue
            message = LinkUpdatedMessage(url=event.url, cause=event.caused_by.value)
            await websocket.send_json(message.model_dump())
            logger.debug(f"Sent link update ({event.caused_by.value}) to display surface")
    except asyncio.CancelledError:
        logger.debug("Link update forwarder cancelled")
        raise
    except Exception as e:
        logger.error(f"Error forwarding link update: {e}", exc_info=True)


@app.websocket("/link/ws")
async def link_updates_endpoint(websocket: WebSocket, backend: LinkBackend = Depends(get_link_backend)):
    """Event surface: one `link-updated` message per successful link change.

    The current link (or null) is sent right after connecting, so a surface
    that missed earlier events starts from the latest value.
    """
    await websocket.accept()
    subscription = backend.channel.subscribe()
    logger.info("Display surface connected for link updates")
    forwarder = None
    try:
        initial = LinkUpdatedMessage(url=backend.manager.current_link(), cause="current")
        await websocket.send_json(initial.model_dump())
        forwarder = asyncio.create_task(forward_link_changes(websocket, subscription))
        while True:
            # Clients do not send anything meaningful; reading detects the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Display surface disconnected from link updates")
    finally:
        subscription.close()
        if forwarder is not None:
            forwarder.cancel()
            try:
                await forwarder
            except asyncio.CancelledError:
                pass
