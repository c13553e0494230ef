"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Generator

import pytest

from spamscanner.metrics import metrics

# Keep a developer .env from changing scanner defaults under test.
for _name in ("CLAMD_HOST", "CLAMD_SOCKET", "CLASSIFIER_PATH", "CONFIG_DIR"):
    os.environ.pop(_name, None)


@pytest.fixture(scope="session")
def event_loop() -> Generator[asyncio.AbstractEventLoop, None, None]:
    """Shared event loop for coroutine tests."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        loop.close()


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    """Run `async def` tests to completion without an asyncio plugin."""
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None

    kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    loop = pyfuncitem.funcargs.get("event_loop")
    owned = loop is None or loop.is_closed()
    if owned:
        loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(pyfuncitem.obj(**kwargs))
    finally:
        if owned:
            loop.close()
    return True


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


@pytest.fixture(autouse=True)
def reset_metrics():
    """Give every test a clean process-wide metrics registry."""
    metrics.reset()
    yield
    metrics.reset()
