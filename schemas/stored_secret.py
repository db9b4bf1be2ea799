from pydantic import BaseModel, ConfigDict


STORE_FORMAT = "securelink/1"


class StoredSecret(BaseModel):
    """On-disk form of the current link. Binary fields are standard base64."""

    model_config = ConfigDict(extra="forbid")

    format: str
    algorithm: str
    key_ref: str
    nonce: str
    ciphertext: str
