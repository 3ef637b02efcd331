"""Device identifier bootstrap."""

import logging
import uuid

from src.domain.ports import KeyValueStoragePort

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "eh_doctor.device_id"


def ensure_device_id(storage: KeyValueStoragePort, key: str = DEVICE_ID_KEY) -> str:
    """Return the device identifier, generating and storing it on first call.

    Parameters:
        storage: Device-local key/value store
        key: Storage key holding the identifier

    Returns:
        str: Opaque device identifier (stable once generated)
    """
    raw = storage.get(key)
    if raw:
        device_id = raw.decode("utf-8").strip()
        if device_id:
            return device_id

    device_id = uuid.uuid4().hex
    storage.set(key, device_id.encode("utf-8"))
    logger.info("Generated new device identifier")
    return device_id
