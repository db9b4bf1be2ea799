from typing import Optional

from channel import NotificationChannel
from codec import LinkCodec
from commands import LinkCommands
from constants import LINK_BASE_URL, LINK_ID_BITS, LINK_KEY_PATH, LINK_STORE_PATH
from keystore import FileKeystore, Keystore
from logging_config import get_logger
from manager import LinkManager
from store import SecretStore

logger = get_logger(__name__)


class LinkBackend:
    """Process-wide wiring of codec, keystore, store, channel and manager."""

    def __init__(
        self,
        store_path: str = LINK_STORE_PATH,
        keystore: Optional[Keystore] = None,
        base_url: str = LINK_BASE_URL,
        identifier_bits: int = LINK_ID_BITS,
    ):
        self.codec = LinkCodec(base_url)
        self.keystore = keystore if keystore is not None else FileKeystore(LINK_KEY_PATH)
        self.store = SecretStore(store_path, self.keystore, self.codec)
        self.channel = NotificationChannel()
        self.manager = LinkManager(self.store, self.channel, identifier_bits=identifier_bits)
        self.commands = LinkCommands(self.manager)
        logger.info(f"Initializing LinkBackend with store at {store_path} and endpoint {self.codec.base_url}")


link_backend = LinkBackend()
