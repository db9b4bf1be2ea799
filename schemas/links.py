from pydantic import BaseModel
from typing import Optional


class LinkResponse(BaseModel):
    url: str
    notice: Optional[str] = None

class ManualLinkRequest(BaseModel):
    push_id: str = ""
    audience: Optional[str] = ""

class LinkStateResponse(BaseModel):
    state: str
    has_link: bool

class LinkUpdatedMessage(BaseModel):
    type: str = "link-updated"
    url: Optional[str]
    cause: str
