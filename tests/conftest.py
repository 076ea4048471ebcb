"""Shared pytest hooks for the EduTrack suite.

Repository, provisioning and storage-constraint tests are coroutines marked
``@pytest.mark.asyncio``. The hook below runs them on a fresh event loop so
the suite does not depend on an async plugin being installed.
"""

from __future__ import annotations

import asyncio
import inspect

import pytest


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: run the coroutine test on its own event loop")


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Drive a marked coroutine test to completion with its fixtures as kwargs.

    Each test gets a new loop, so async engines created inside a test must be
    disposed before it returns.
    """
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None

    fixtures = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    asyncio.run(pyfuncitem.obj(**fixtures))
    return True
