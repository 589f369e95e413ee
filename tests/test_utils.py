"""Tests for shared utilities: retry, locks, cancellation, progress, settings."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from mosaic.config import LauncherSettings
from mosaic.errors import LauncherError, NetworkError, OperationCancelled
from mosaic.utils.cancel import CancellationToken
from mosaic.utils.locks import VersionLockTable
from mosaic.utils.logger import setup_logging
from mosaic.utils.progress import ProgressChannel, ProgressEvent
from mosaic.utils.retry import retry_async


@pytest.mark.asyncio
async def test_retry_succeeds_after_failures():
    attempts, cleanups = [], []

    async def operation(attempt):
        attempts.append(attempt)
        if attempt < 3:
            raise NetworkError("flaky")
        return "ok"

    result = await retry_async(operation, attempts=3, delay=0, cleanup=lambda: cleanups.append(1))

    assert result == "ok"
    assert attempts == [1, 2, 3]
    assert len(cleanups) == 2


@pytest.mark.asyncio
async def test_retry_exhaustion_reraises_last_error():
    cleanups = []

    async def operation(attempt):
        raise NetworkError(f"failure {attempt}")

    with pytest.raises(NetworkError, match="failure 3"):
        await retry_async(operation, attempts=3, delay=0, retry_on=(NetworkError,),
                          cleanup=lambda: cleanups.append(1))

    assert len(cleanups) == 3


@pytest.mark.asyncio
async def test_retry_does_not_retry_other_errors():
    calls = []

    async def operation(attempt):
        calls.append(attempt)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await retry_async(operation, attempts=3, delay=0, retry_on=(NetworkError,))
    assert calls == [1]


@pytest.mark.asyncio
async def test_retry_checks_cancellation():
    token = CancellationToken()

    async def operation(attempt):
        token.cancel()
        raise NetworkError("down")

    with pytest.raises(OperationCancelled):
        await retry_async(operation, attempts=3, delay=0, retry_on=(NetworkError,), cancel=token)


def test_cancellation_token():
    token = CancellationToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(OperationCancelled):
        token.raise_if_cancelled()


@pytest.mark.asyncio
async def test_version_lock_serializes_same_id():
    locks = VersionLockTable()
    order = []

    async def job(name, version_id):
        async with locks.hold(version_id):
            order.append(f"{name} start")
            await asyncio.sleep(0.05)
            order.append(f"{name} end")

    await asyncio.gather(job("a", "1.20.1"), job("b", "1.20.1"))
    assert order in (["a start", "a end", "b start", "b end"],
                     ["b start", "b end", "a start", "a end"])
    assert not locks.locked("1.20.1")


@pytest.mark.asyncio
async def test_version_lock_waiters_leave_executor_to_holder():
    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=2)
    loop.set_default_executor(executor)
    locks = VersionLockTable()
    finished = []

    async def job(name):
        async with locks.hold("1.20.1"):
            await asyncio.to_thread(sum, [1, 2, 3])
            finished.append(name)

    try:
        await asyncio.wait_for(asyncio.gather(*(job(n) for n in range(6))), timeout=10)
    finally:
        executor.shutdown(wait=False)
    assert sorted(finished) == list(range(6))


@pytest.mark.asyncio
async def test_version_lock_allows_different_ids():
    locks = VersionLockTable()
    async with locks.hold("1.20.1"):
        async with locks.hold("1.19.4"):
            assert locks.locked("1.20.1") and locks.locked("1.19.4")


def test_progress_channel_tolerates_late_events():
    channel = ProgressChannel()
    channel.send(ProgressEvent("library", "a.jar", 50, 100))
    channel.close()
    channel.send(ProgressEvent("library", "a.jar", 100, 100))

    events = list(channel.drain())
    assert [e.percentage for e in events] == [50.0]
    assert channel.closed
    assert list(channel.drain()) == []


def test_progress_percentage_unknown_total():
    assert ProgressEvent("asset", "x", 10).percentage is None


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("MOSAIC_MINECRAFT_DIR", str(tmp_path / "mc"))
    monkeypatch.setenv("MOSAIC_INSTALLER_ATTEMPTS", "5")

    settings = LauncherSettings()

    assert settings.minecraft_dir == tmp_path / "mc"
    assert settings.installer_attempts == 5
    assert settings.client_jar("1.20.1") == tmp_path / "mc" / "versions" / "1.20.1" / "1.20.1.jar"
    assert settings.natives_dir("1.20.1") == tmp_path / "mc" / "versions" / "1.20.1" / "natives"


def test_error_hint_in_message():
    error = LauncherError("Version not found", hint="Refresh the list.")
    assert str(error) == "Version not found\nRefresh the list."
    assert NetworkError("down").hint


def test_setup_logging_is_idempotent(tmp_path):
    root = logging.getLogger()
    before, level = list(root.handlers), root.level
    try:
        setup_logging(tmp_path)
        count = len(root.handlers)
        setup_logging(tmp_path)
        assert len(root.handlers) == count
        assert (tmp_path / "launcher.log").exists()
    finally:
        root.setLevel(level)
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
