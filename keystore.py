"""Key capability used by the secret store.

A keystore owns exactly one 256-bit key and exposes authenticated encryption
with it (AES-256-GCM). The store never sees the raw key.
"""
import hashlib
import os
import secrets
import tempfile
import threading
from pathlib import Path
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from errors import CorruptKey, DecryptionFailed, EntropyUnavailable, StoreError
from logging_config import get_logger

logger = get_logger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12
ALGORITHM = "AES-256-GCM"
CORRUPT_KEY_SUFFIX = ".corrupt"


class Keystore:
    """Base class: subclasses provide ``get_or_create_key`` and ``rotate``."""

    algorithm = ALGORITHM

    def get_or_create_key(self) -> bytes:
        raise NotImplementedError

    def rotate(self) -> None:
        """Set the current key aside and start over with a fresh one.

        Anything sealed under the old key can no longer be opened.
        """
        raise NotImplementedError

    @property
    def key_ref(self) -> str:
        """Opaque reference to the current key (never the key itself)."""
        return hashlib.sha256(self.get_or_create_key()).hexdigest()[:16]

    def seal(self, plaintext: bytes, aad: bytes = b"") -> Tuple[bytes, bytes]:
        # Fresh nonce on every call; never reused under one key
        try:
            nonce = secrets.token_bytes(NONCE_SIZE)
        except (NotImplementedError, OSError) as e:
            raise EntropyUnavailable("secure random source is unavailable") from e
        ciphertext = AESGCM(self.get_or_create_key()).encrypt(nonce, plaintext, aad or None)
        return nonce, ciphertext

    def open(self, nonce: bytes, ciphertext: bytes, aad: bytes = b"") -> bytes:
        if len(nonce) != NONCE_SIZE:
            raise DecryptionFailed("stored nonce has the wrong size")
        try:
            return AESGCM(self.get_or_create_key()).decrypt(nonce, ciphertext, aad or None)
        except InvalidTag as e:
            raise DecryptionFailed("stored link failed authentication") from e


class MemoryKeystore(Keystore):
    """Process-local key; nothing touches the disk."""

    def __init__(self, key: Optional[bytes] = None):
        if key is not None and len(key) != KEY_SIZE:
            raise ValueError(f"key must be {KEY_SIZE} bytes")
        self._key = key

    def get_or_create_key(self) -> bytes:
        if self._key is None:
            self._key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
        return self._key

    def rotate(self) -> None:
        self._key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)


class FileKeystore(Keystore):
    """Machine-bound key kept in a private file next to (not inside) the link store."""

    def __init__(self, path):
        self.path = Path(path)
        self._key: Optional[bytes] = None
        self._lock = threading.Lock()

    def get_or_create_key(self) -> bytes:
        with self._lock:
            if self._key is None:
                self._key = self._read_key() if self.path.exists() else self._create_key()
            return self._key

    def _read_key(self) -> bytes:
        try:
            key = self.path.read_bytes()
        except OSError as e:
            raise StoreError(f"cannot read key file: {e}") from e
        if len(key) != KEY_SIZE:
            raise CorruptKey("key file has the wrong size")
        return key

    def _create_key(self) -> bytes:
        key = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        except OSError as e:
            raise StoreError(f"cannot create key file: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(key)
                f.flush()
                os.fsync(f.fileno())
            # Hard link publishes the complete file, and fails if a key already exists
            try:
                os.link(tmp_name, self.path)
            except FileExistsError:
                logger.debug("Key file appeared concurrently, reading existing key")
                return self._read_key()
        except OSError as e:
            raise StoreError(f"cannot write key file: {e}") from e
        finally:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
        logger.info(f"Created new link encryption key at {self.path}")
        return key

    def rotate(self) -> None:
        with self._lock:
            if self.path.exists():
                target = self.path.with_name(self.path.name + CORRUPT_KEY_SUFFIX)
                try:
                    os.replace(self.path, target)
                except OSError as e:
                    raise StoreError(f"cannot set unusable key file aside: {e}") from e
                logger.warning(f"Moved unusable key file to {target}")
            self._key = self._create_key()
