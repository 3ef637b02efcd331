"""Pass-Key Gate.

Blocks use of the catalog on a device until the operator proves knowledge of a
locally stored pass key, and bootstraps that pass key on first use.

Security Impact:
    - This is a local deterrent, NOT an authentication boundary
    - The stored value is an unsalted SHA-256 hex digest that anyone with
      access to the device storage can read
    - It must never be used to protect exported data, which stays plaintext
    - The secret and its digest are never logged

Architecture:
    - Domain service with an injected KeyValueStoragePort
    - Each create/unlock interaction is serialized by a lock so a front end can
      disable submission while a hash is in flight (see ``busy``)
"""

import hashlib
import logging
import threading
from enum import Enum
from typing import Optional

from src.domain.ports import KeyValueStoragePort, Result, ValidationError

logger = logging.getLogger(__name__)

PASSKEY_HASH_KEY = "eh_doctor.passkey_hash"
MIN_PASSKEY_LENGTH = 4

TOO_SHORT_MESSAGE = "Pass key must be at least {min_length} characters."
WRONG_PASSKEY_MESSAGE = "Incorrect pass key."
NO_PASSKEY_MESSAGE = "No pass key has been created on this device."


def hash_passkey(secret: str) -> str:
    """Hex-encoded SHA-256 digest of a pass key."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


class GateState(str, Enum):
    """Access state of the gate for the current session."""
    NO_CREDENTIAL = "no_credential"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class GateMode(str, Enum):
    """Which form a front end should show while the gate is closed."""
    CREATE = "create"
    UNLOCK = "unlock"


class PassKeyGate:
    """Local pass-key gate for one device.

    State transitions:
        NO_CREDENTIAL --create_credential--> UNLOCKED
        LOCKED --attempt_unlock(ok)--> UNLOCKED
        LOCKED --attempt_unlock(fail)--> LOCKED (last_error set)

    UNLOCKED lasts until the session object is discarded; there is no
    re-lock action.

    Parameters:
        storage: Device-local key/value store
        min_length: Minimum pass-key length accepted by create_credential
        hash_key: Storage key holding the credential hash

    Example Usage:
        ```python
        gate = PassKeyGate(storage)
        if not gate.has_credential():
            gate.create_credential("clinic-2024")
        elif not gate.attempt_unlock(typed_secret):
            print(gate.last_error)
        ```
    """

    def __init__(
        self,
        storage: KeyValueStoragePort,
        min_length: int = MIN_PASSKEY_LENGTH,
        hash_key: str = PASSKEY_HASH_KEY,
    ):
        self._storage = storage
        self.min_length = min_length
        self.hash_key = hash_key
        self._unlocked = False
        self._reset_requested = False
        self._lock = threading.Lock()
        self.last_error: Optional[str] = None

    @property
    def state(self) -> GateState:
        """Current access state."""
        if self._unlocked:
            return GateState.UNLOCKED
        if not self.has_credential():
            return GateState.NO_CREDENTIAL
        return GateState.LOCKED

    @property
    def mode(self) -> GateMode:
        """Form to present: CREATE on first use or after a reset request."""
        if self._reset_requested or not self.has_credential():
            return GateMode.CREATE
        return GateMode.UNLOCK

    @property
    def is_unlocked(self) -> bool:
        return self._unlocked

    @property
    def busy(self) -> bool:
        """True while a create/unlock interaction is in progress."""
        return self._lock.locked()

    def _stored_hash(self) -> Optional[str]:
        raw = self._storage.get(self.hash_key)
        if not raw:
            return None
        return raw.decode("utf-8").strip() or None

    def has_credential(self) -> bool:
        """Check whether a pass-key hash is stored for this device."""
        return self._stored_hash() is not None

    def create_credential(self, secret: str) -> Result[None]:
        """Create (or replace) the device pass key and unlock the session.

        Parameters:
            secret: Pass key chosen by the operator

        Returns:
            Result[None]: Failure with ValidationError if the secret is shorter
            than ``min_length``; any previously stored hash is left untouched.
        """
        with self._lock:
            if secret is None or len(secret) < self.min_length:
                error = ValidationError(
                    TOO_SHORT_MESSAGE.format(min_length=self.min_length),
                    source="passkey",
                    details={"min_length": self.min_length},
                )
                self.last_error = str(error)
                return Result.failure_result(error)

            replacing = self.has_credential()
            self._storage.set(self.hash_key, hash_passkey(secret).encode("utf-8"))
            self._reset_requested = False
            self._unlocked = True
            self.last_error = None
            logger.info(f"Pass key {'replaced' if replacing else 'created'} for this device")
            return Result.success_result(None)

    def attempt_unlock(self, secret: str) -> bool:
        """Compare a typed pass key against the stored hash.

        No lockout, rate limiting or attempt counting is applied.

        Parameters:
            secret: Pass key typed by the operator

        Returns:
            bool: True and the session is unlocked on match, False otherwise
        """
        with self._lock:
            stored = self._stored_hash()
            if stored is None:
                self.last_error = NO_PASSKEY_MESSAGE
                return False

            if hash_passkey(secret or "") == stored:
                self._unlocked = True
                self.last_error = None
                logger.debug("Device unlocked")
                return True

            self.last_error = WRONG_PASSKEY_MESSAGE
            logger.debug("Unlock attempt rejected")
            return False

    def reset_credential(self) -> None:
        """Switch to creation mode.

        The old hash stays in storage until create_credential succeeds, so an
        abandoned or failed reset leaves prior access intact.
        """
        self._reset_requested = True
        self.last_error = None

    def cancel_reset(self) -> None:
        """Return to unlock mode without touching the stored hash."""
        self._reset_requested = False
