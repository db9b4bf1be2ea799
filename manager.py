import threading
from enum import Enum
from typing import Callable, Optional, Tuple

from channel import ChangeEvent, LinkChangeCause, NotificationChannel
from codec import IDENTIFIER_CHARSET_DESCRIPTION, RoomLink, is_valid_identifier
from errors import CorruptKey, CorruptStore, DecryptionFailed, LinkError, MalformedUrl, ValidationError
from identifiers import DEFAULT_IDENTIFIER_BITS, new_identifier
from logging_config import get_logger, link_fingerprint
from store import SecretStore

logger = get_logger(__name__)

PUSH_ID_REQUIRED_MESSAGE = "Push ID (Room Name) is required."

# Store failures that mean "there is no usable link" rather than "the disk is broken"
RECOVERABLE_LOAD_ERRORS = (CorruptStore, DecryptionFailed, MalformedUrl)


class LinkState(str, Enum):
    EMPTY = "empty"
    PRESENT = "present"


class LinkManager:
    """Owner of the single "current link" slot.

    Mutations run one at a time under a writer lock that covers validation,
    encryption and the file write. The change event is published after that
    lock is released, but the publish lock is taken first, so events go out
    in exactly the order the store was written.
    """

    def __init__(self, store: SecretStore, channel: NotificationChannel, identifier_bits: int = DEFAULT_IDENTIFIER_BITS):
        self.store = store
        self.channel = channel
        self.identifier_bits = identifier_bits
        self._write_lock = threading.Lock()
        self._publish_lock = threading.Lock()
        self._current: Optional[str] = None
        self._recovered_from: Optional[LinkError] = None

    @property
    def state(self) -> LinkState:
        return LinkState.PRESENT if self._current is not None else LinkState.EMPTY

    def current_link(self) -> Optional[str]:
        """Last known link, without touching the store or waiting on a writer."""
        return self._current

    def pop_recovery(self) -> Optional[LinkError]:
        """Error that forced the last automatic regeneration, if not yet reported."""
        error, self._recovered_from = self._recovered_from, None
        return error

    def ensure_link(self) -> str:
        current = self._current
        if current is not None:
            return current
        return self._mutate(self._load_or_generate)

    def generate_new_link(self) -> str:
        return self._mutate(self._generate)

    def set_manual_link(self, push_id: str, audience: str = "") -> str:
        return self._mutate(lambda: self._manual(push_id, audience))

    def _mutate(self, produce: Callable[[], Tuple[str, Optional[LinkChangeCause]]]) -> str:
        self._write_lock.acquire()
        try:
            url, cause = produce()
            self._current = url
        except BaseException:
            self._write_lock.release()
            raise

        if cause is None:
            self._write_lock.release()
            return url

        self._publish_lock.acquire()
        self._write_lock.release()
        try:
            self.channel.publish(ChangeEvent(url=url, caused_by=cause))
        finally:
            self._publish_lock.release()
        return url

    def _save(self, link: RoomLink) -> str:
        try:
            return self.store.save(link)
        except CorruptKey as e:
            # Set aside; links sealed under the old key are lost with it
            logger.warning(f"Encryption key is unusable ({e}); replacing it")
            self.store.keystore.rotate()
            self._recovered_from = e
            return self.store.save(link)

    def _new_room_link(self) -> RoomLink:
        return RoomLink(
            push_id=new_identifier(self.identifier_bits),
            audience=new_identifier(self.identifier_bits),
        )

    def _load_or_generate(self) -> Tuple[str, Optional[LinkChangeCause]]:
        if self._current is not None:
            # Another caller filled the slot while we waited for the lock
            return self._current, None

        recovered_from = None
        try:
            url = self.store.load()
        except RECOVERABLE_LOAD_ERRORS as e:
            logger.warning(f"Stored link is unusable ({type(e).__name__}: {e}); generating a new one")
            self.store.preserve_corrupt()
            recovered_from = e
            url = None

        if url is not None:
            logger.info(f"Loaded link {link_fingerprint(url)}")
            return url, LinkChangeCause.LOADED

        url = self._save(self._new_room_link())
        if recovered_from is not None and self._recovered_from is None:
            self._recovered_from = recovered_from
        logger.info(f"Generated initial link {link_fingerprint(url)}")
        return url, LinkChangeCause.GENERATED

    def _generate(self) -> Tuple[str, Optional[LinkChangeCause]]:
        previous = self._current
        link = self._new_room_link()
        while self.store.codec.encode(link) == previous:
            link = self._new_room_link()
        url = self._save(link)
        logger.info(f"Generated new link {link_fingerprint(url)}")
        return url, LinkChangeCause.GENERATED

    def _manual(self, push_id: str, audience: str) -> Tuple[str, Optional[LinkChangeCause]]:
        push_id = (push_id or "").strip()
        audience = (audience or "").strip()
        if not push_id:
            raise ValidationError("push_id", PUSH_ID_REQUIRED_MESSAGE)
        if not is_valid_identifier(push_id):
            raise ValidationError("push_id", f"Push ID may only contain {IDENTIFIER_CHARSET_DESCRIPTION}.")
        if audience and not is_valid_identifier(audience):
            raise ValidationError("audience", f"Audience may only contain {IDENTIFIER_CHARSET_DESCRIPTION}.")

        url = self._save(RoomLink(push_id=push_id, audience=audience))
        logger.info(f"Saved manual link {link_fingerprint(url)}")
        return url, LinkChangeCause.MANUAL_SET
