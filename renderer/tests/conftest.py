import pytest


@pytest.fixture
def anyio_backend():
    # The service is asyncio-only (asyncio.Lock/gather, Playwright's asyncio API).
    return "asyncio"
