"""Domain Services.

This package contains domain services that implement catalog behaviour
without infrastructure dependencies. Storage arrives through
KeyValueStoragePort.
"""

from src.domain.services.device_identity import ensure_device_id
from src.domain.services.disease_store import DiseaseStore
from src.domain.services.passkey_gate import GateMode, GateState, PassKeyGate

__all__ = ['DiseaseStore', 'PassKeyGate', 'GateState', 'GateMode', 'ensure_device_id']
