"""Command surface the display layer calls into."""
from dataclasses import dataclass
from typing import Optional

from errors import CorruptKey, CorruptStore, DecryptionFailed, MalformedUrl, ValidationError
from logging_config import get_logger
from manager import LinkManager

logger = get_logger(__name__)

RECOVERY_NOTICES = {
    CorruptKey: "The link encryption key was unreadable, so a new key and link were generated.",
    DecryptionFailed: "The saved link could not be decrypted, so a new link was generated.",
    CorruptStore: "The saved link file was unreadable, so a new link was generated.",
    MalformedUrl: "The saved link was invalid, so a new link was generated.",
}


@dataclass
class LinkResult:
    url: str
    notice: Optional[str] = None


class LinkCommands:
    def __init__(self, manager: LinkManager):
        self.manager = manager

    def get_or_create_link(self) -> LinkResult:
        url = self.manager.ensure_link()
        recovered_from = self.manager.pop_recovery()
        notice = None
        if recovered_from is not None:
            notice = next(
                (text for kind, text in RECOVERY_NOTICES.items() if isinstance(recovered_from, kind)),
                "The saved link could not be used, so a new link was generated.",
            )
        return LinkResult(url=url, notice=notice)

    def regenerate_link(self) -> str:
        return self.manager.generate_new_link()

    def set_manual_link(self, push_id: str, audience: str = "") -> Optional[str]:
        """Returns None on success, otherwise the message to show the user."""
        try:
            self.manager.set_manual_link(push_id, audience)
        except ValidationError as e:
            logger.info(f"Manual link rejected: {e.field}")
            return e.message
        return None
