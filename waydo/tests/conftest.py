import os
import pytest


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


@pytest.fixture
def drain_until():
    """Poll ``server.drain()`` until ``count`` requests arrive or ``timeout`` passes."""
    import time

    def _drain(server, count: int = 1, timeout: float = 2.0):
        received = []
        deadline = time.monotonic() + timeout
        while len(received) < count and time.monotonic() < deadline:
            received.extend(server.drain())
            if len(received) < count:
                time.sleep(0.01)
        return received

    return _drain
