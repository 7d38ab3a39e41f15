"""Simulated scanning backend.

Stands in for a real antivirus integration. Every payload is clean except
those carrying the EICAR anti-malware test signature, which lets the
INFECTED path be exercised end to end.
"""

from ..models.document import ScanStatus
from .ports import ScannerPort, ScanVerdict

EICAR_SIGNATURE = b"EICAR-STANDARD-ANTIVIRUS-TEST-FILE"


class SimulatedScanner(ScannerPort):
    """Scanner adapter that never calls out."""

    def scan(self, data: bytes) -> ScanVerdict:
        if EICAR_SIGNATURE in data:
            return ScanVerdict(status=ScanStatus.INFECTED, detail="EICAR test signature detected")
        return ScanVerdict(status=ScanStatus.CLEAN, detail="No threats detected")
