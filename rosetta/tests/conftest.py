import pytest


@pytest.fixture
def anyio_backend():
    # service code and tests use asyncio primitives directly
    return "asyncio"
