from fastapi import APIRouter, Depends, HTTPException, Request
from schemas.links import LinkResponse, LinkStateResponse, ManualLinkRequest
from backend import LinkBackend, link_backend
from errors import EntropyUnavailable, StoreError
from logging_config import get_logger

logger = get_logger(__name__)

links_router = APIRouter(prefix="/link", tags=["link"])


def get_link_backend() -> LinkBackend:
    return link_backend


def _client(request: Request) -> str:
    return request.client.host if request and request.client else "unknown"


@links_router.get("", response_model=LinkResponse)
async def get_or_create_link(request: Request, backend: LinkBackend = Depends(get_link_backend)):
    """
    Current room link; generates and saves one on first use.

    `notice` is set when the saved link could not be read and was replaced.
    """
    logger.info(f"Link request from {_client(request)}")
    try:
        result = backend.commands.get_or_create_link()
    except EntropyUnavailable:
        logger.error("Cannot create link: secure random source unavailable", exc_info=True)
        raise HTTPException(status_code=503, detail="Secure random source unavailable; cannot create a link")
    except StoreError as e:
        logger.error(f"Cannot load or save link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load or save the link")
    if result.notice:
        logger.warning(f"Link replaced for {_client(request)}: {result.notice}")
    return LinkResponse(url=result.url, notice=result.notice)


@links_router.post("/regenerate", response_model=LinkResponse)
async def regenerate_link(request: Request, backend: LinkBackend = Depends(get_link_backend)):
    logger.info(f"Link regeneration request from {_client(request)}")
    try:
        url = backend.commands.regenerate_link()
    except EntropyUnavailable:
        logger.error("Cannot regenerate link: secure random source unavailable", exc_info=True)
        raise HTTPException(status_code=503, detail="Secure random source unavailable; cannot create a link")
    except StoreError as e:
        logger.error(f"Cannot save regenerated link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save the link")
    return LinkResponse(url=url)


@links_router.put("/manual", response_model=LinkResponse)
async def set_manual_link(body: ManualLinkRequest, request: Request, backend: LinkBackend = Depends(get_link_backend)):
    logger.info(f"Manual link request from {_client(request)}")
    try:
        error = backend.commands.set_manual_link(body.push_id, body.audience or "")
    except StoreError as e:
        logger.error(f"Cannot save manual link: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save the link")
    if error:
        logger.warning(f"Manual link rejected for {_client(request)}")
        raise HTTPException(status_code=400, detail=error)
    # No await since the save: current_link is the value just written
    return LinkResponse(url=backend.manager.current_link())


@links_router.get("/state", response_model=LinkStateResponse)
async def get_link_state(backend: LinkBackend = Depends(get_link_backend)):
    state = backend.manager.state
    return LinkStateResponse(state=state.value, has_link=backend.manager.current_link() is not None)
