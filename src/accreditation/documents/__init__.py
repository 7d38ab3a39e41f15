"""Document Vault: encrypted storage, integrity checks, scanning and retention."""

from .encryption import DocumentCipher, EncryptionKeyError
from .ports import ScannerPort, ScanVerdict
from .scanner import SimulatedScanner
from .vault import DocumentMetadata, DocumentVault

__all__ = [
    "DocumentCipher",
    "EncryptionKeyError",
    "ScannerPort",
    "ScanVerdict",
    "SimulatedScanner",
    "DocumentMetadata",
    "DocumentVault",
]
