"""Mock implementations for testing."""

from tests.mocks.collector import FakeCollector, FakeStore, network_down
from tests.mocks.exchange import by_param, by_suffix, make_stub_client


__all__ = [
    "FakeCollector",
    "FakeStore",
    "by_param",
    "by_suffix",
    "make_stub_client",
    "network_down",
]
