"""Scanning backend port.

The vault depends only on this interface. Adapters may call a local
antivirus daemon, a remote API, or simulate a verdict. A scan may take
arbitrarily long; when it runs on a worker the verdict arrives later via
DocumentVault.record_scan_result.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..models.document import ScanStatus


@dataclass(frozen=True)
class ScanVerdict:
    """Outcome of a scan.

    Attributes:
        status: CLEAN, INFECTED or ERROR (never PENDING)
        detail: Free-text backend result, stored as scan_result
    """
    status: ScanStatus
    detail: str


class ScannerPort(ABC):
    """Port interface for malware scanning."""

    @abstractmethod
    def scan(self, data: bytes) -> ScanVerdict:
        """Scan a plaintext payload.

        Args:
            data: Decrypted document bytes

        Returns:
            ScanVerdict: Backend verdict

        Raises:
            Exception: Adapter-specific failures; the vault records them as
                scan_status=ERROR
        """
        pass
