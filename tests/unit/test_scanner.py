"""Unit tests for the simulated scanning backend"""

from accreditation.documents.ports import ScannerPort
from accreditation.documents.scanner import EICAR_SIGNATURE, SimulatedScanner
from accreditation.models.document import ScanStatus

EICAR_TEST_FILE = rb"X5O!P%@AP[4\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"


class TestSimulatedScanner:
    def test_is_a_scanner_port(self):
        assert isinstance(SimulatedScanner(), ScannerPort)

    def test_clean_payload(self):
        verdict = SimulatedScanner().scan(b"%PDF-1.4 harmless")
        assert verdict.status == ScanStatus.CLEAN
        assert verdict.detail == "No threats detected"

    def test_eicar_payload_is_infected(self):
        assert EICAR_SIGNATURE in EICAR_TEST_FILE
        verdict = SimulatedScanner().scan(b"prefix " + EICAR_TEST_FILE)
        assert verdict.status == ScanStatus.INFECTED
        assert "EICAR" in verdict.detail
