import base64
import binascii
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from codec import LinkCodec, RoomLink
from errors import CorruptStore, DecryptionFailed, MalformedUrl, StoreError
from keystore import Keystore
from logging_config import get_logger, link_fingerprint
from schemas.stored_secret import STORE_FORMAT, StoredSecret

logger = get_logger(__name__)

CORRUPT_SUFFIX = ".corrupt"


class SecretStore:
    """Encrypted, atomically written home of the current room link.

    The store reports precise errors and never repairs, deletes or rewrites a
    file it could not read; recovery is the caller's decision.
    """

    def __init__(self, path, keystore: Keystore, codec: LinkCodec):
        self.path = Path(path)
        self.keystore = keystore
        self.codec = codec

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Optional[str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No stored link at {self.path}")
            return None
        except UnicodeDecodeError as e:
            raise CorruptStore("stored link file is not text") from e
        except OSError as e:
            raise StoreError(f"cannot read stored link: {e}") from e

        try:
            stored = StoredSecret.model_validate_json(raw)
        except PydanticValidationError as e:
            raise CorruptStore("stored link file has an unreadable format") from e
        if stored.format != STORE_FORMAT:
            raise CorruptStore(f"unsupported stored link format '{stored.format}'")
        if stored.algorithm != self.keystore.algorithm:
            raise CorruptStore(f"unsupported stored link algorithm '{stored.algorithm}'")

        try:
            nonce = base64.b64decode(stored.nonce, validate=True)
            ciphertext = base64.b64decode(stored.ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CorruptStore("stored link fields are not valid base64") from e

        if stored.key_ref != self.keystore.key_ref:
            raise DecryptionFailed("stored link was sealed with a different key")
        plaintext = self.keystore.open(nonce, ciphertext, self._aad(stored.format, stored.algorithm, stored.key_ref))

        try:
            url = plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedUrl("stored link is not text") from e
        # Re-validate what came out of the box before anyone displays it
        self.codec.decode(url)
        logger.debug(f"Loaded stored link {link_fingerprint(url)}")
        return url

    def save(self, value: Union[str, RoomLink]) -> str:
        if isinstance(value, RoomLink):
            url = self.codec.encode(value)
        else:
            url = self.codec.encode(self.codec.decode(value))

        key_ref = self.keystore.key_ref
        algorithm = self.keystore.algorithm
        nonce, ciphertext = self.keystore.seal(url.encode("utf-8"), self._aad(STORE_FORMAT, algorithm, key_ref))
        stored = StoredSecret(
            format=STORE_FORMAT,
            algorithm=algorithm,
            key_ref=key_ref,
            nonce=base64.b64encode(nonce).decode("ascii"),
            ciphertext=base64.b64encode(ciphertext).decode("ascii"),
        )
        self._write_atomic(stored.model_dump_json())
        logger.info(f"Saved link {link_fingerprint(url)} to {self.path}")
        return url

    def preserve_corrupt(self) -> Optional[Path]:
        """Copy the current file aside so a following save cannot destroy it."""
        if not self.path.exists():
            return None
        target = self.path.with_name(self.path.name + CORRUPT_SUFFIX)
        try:
            shutil.copy2(self.path, target)
        except OSError as e:
            raise StoreError(f"cannot preserve unreadable link file: {e}") from e
        logger.warning(f"Preserved unreadable link file as {target}")
        return target

    @staticmethod
    def _aad(format_tag: str, algorithm: str, key_ref: str) -> bytes:
        # Header fields are authenticated along with the ciphertext
        return f"{format_tag}|{algorithm}|{key_ref}".encode("utf-8")

    def _write_atomic(self, payload: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        except OSError as e:
            raise StoreError(f"cannot prepare link file: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise StoreError(f"cannot write link file: {e}") from e
