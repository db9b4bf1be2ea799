import base64
import math
import secrets

from errors import EntropyUnavailable
from logging_config import get_logger

logger = get_logger(__name__)

MIN_IDENTIFIER_BITS = 120
DEFAULT_IDENTIFIER_BITS = 128

# Unpadded base64url only ever yields these characters
IDENTIFIER_ALPHABET = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")


def new_identifier(length_bits: int = DEFAULT_IDENTIFIER_BITS) -> str:
    """Return a fresh URL-safe random identifier carrying at least ``length_bits`` of entropy.

    Bytes come straight from the OS CSPRNG on every call. If that source is
    unavailable, EntropyUnavailable is raised; there is no weaker fallback.
    """
    if length_bits < MIN_IDENTIFIER_BITS:
        raise ValueError(f"identifiers need at least {MIN_IDENTIFIER_BITS} bits, got {length_bits}")
    num_bytes = math.ceil(length_bits / 8)
    try:
        raw = secrets.token_bytes(num_bytes)
    except (NotImplementedError, OSError) as e:
        logger.error(f"OS entropy source unavailable: {e}")
        raise EntropyUnavailable("secure random source is unavailable") from e
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
