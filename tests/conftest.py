import pytest

from oaiclient import Client, ClientOptions, LoggingOptions, RetryPolicy

from fakes import FakeAdapter, no_wait


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def make_client(adapter):
    def make(retries=0, **overrides):
        options = ClientOptions(
            http_adapter=adapter,
            retry=RetryPolicy(retries=retries, backoff=no_wait),
            logging=LoggingOptions(log_level="error"),
        )
        return Client("test-api-key", options=options, **overrides)
    return make


@pytest.fixture
def client(make_client):
    return make_client()
