"""Tests for quotaprobe.probes.base module.

Tests cover:
- BaseUsageProbe ABC contract
- ProbeAttempt outcome capture
- RPC-then-TTY state machine and error reporting
- async probe() executor + safety timeout
- Process teardown on timeout and cancellation
- probe_all concurrency helper
"""

from __future__ import annotations

import asyncio
import os
import threading
import time
from pathlib import Path
from unittest.mock import PropertyMock, patch

import pytest

from quotaprobe.integrations.errors import BinaryNotFoundError, TimedOutError
from quotaprobe.integrations.process import ProcessSession
from quotaprobe.integrations.pty_runner import PTYCommandRunner, PTYRunOptions
from quotaprobe.probes.base import (
    BaseUsageProbe,
    ProbeAttempt,
    ProbeState,
    UsageProbe,
    probe_all,
)
from quotaprobe.probes.errors import (
    CLINotFoundError,
    ExecutionFailedError,
    ParseFailedError,
    ProbeTimeoutError,
)
from quotaprobe.probes.models import QuotaType, UsageQuota, UsageSnapshot


def _snapshot(percent: float = 50.0, provider_id: str = "fake") -> UsageSnapshot:
    return UsageSnapshot(
        provider_id=provider_id,
        quotas=(UsageQuota(percent, QuotaType.SESSION, provider_id),),
    )


class ScriptedProbe(BaseUsageProbe):
    """Probe whose two paths return or raise pre-configured outcomes."""

    def __init__(self, rpc, tty, *, supports_rpc: bool = True) -> None:
        super().__init__("fake-cli", timeout_seconds=1.0)
        self._rpc = rpc
        self._tty = tty
        self.supports_rpc = supports_rpc
        self.calls: list[str] = []
        self.states: list[ProbeState] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    def _run(self, path, outcome):
        self.calls.append(path)
        self.states.append(self.state)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def _probe_via_rpc(self) -> UsageSnapshot:
        return self._run("rpc", self._rpc)

    def _probe_via_tty(self) -> UsageSnapshot:
        return self._run("tty", self._tty)


class TestBaseUsageProbeABC:
    """Tests for the abstract contract."""

    def test_cannot_instantiate_directly(self):
        with pytest.raises(TypeError, match="abstract"):
            BaseUsageProbe("x")  # type: ignore[abstract]

    def test_subclass_must_implement_paths(self):
        class NoPaths(BaseUsageProbe):
            @property
            def provider_id(self) -> str:
                return "x"

        with pytest.raises(TypeError, match="abstract"):
            NoPaths("x")  # type: ignore[abstract]

    def test_satisfies_protocol(self):
        assert isinstance(ScriptedProbe(None, None), UsageProbe)

    def test_initial_state_is_idle(self):
        assert ScriptedProbe(None, None).state is ProbeState.IDLE

    def test_map_run_error_exposed(self):
        assert BaseUsageProbe.map_run_error(BinaryNotFoundError("x")) == CLINotFoundError("x")


class TestProbeAttempt:
    """Tests for ProbeAttempt.run."""

    def test_success(self):
        snapshot = _snapshot()
        attempt = ProbeAttempt.run("rpc", lambda: snapshot)

        assert attempt.succeeded
        assert attempt.snapshot is snapshot
        assert attempt.error is None

    def test_probe_error_captured(self):
        def fail():
            raise ParseFailedError("empty")

        attempt = ProbeAttempt.run("tty", fail)

        assert not attempt.succeeded
        assert attempt.error == ParseFailedError("empty")

    def test_run_error_mapped(self):
        def fail():
            raise TimedOutError(1.0)

        assert ProbeAttempt.run("tty", fail).error == ProbeTimeoutError()

    def test_unexpected_error_wrapped(self):
        def fail():
            raise KeyError("primary")

        attempt = ProbeAttempt.run("rpc", fail)

        assert isinstance(attempt.error, ExecutionFailedError)
        assert attempt.error.message.startswith("Unexpected error:")


class TestProbeSync:
    """Tests for the RPC-then-TTY state machine."""

    def test_rpc_success_skips_tty(self):
        snapshot = _snapshot(70)
        probe = ScriptedProbe(snapshot, ParseFailedError("unused"))

        assert probe.probe_sync() is snapshot
        assert probe.calls == ["rpc"]
        assert probe.states == [ProbeState.PROBING_RPC]
        assert probe.state is ProbeState.SUCCEEDED

    def test_rpc_failure_falls_back_to_tty(self):
        snapshot = _snapshot(37)
        probe = ScriptedProbe(ExecutionFailedError("RPC error: boom"), snapshot)

        assert probe.probe_sync() is snapshot
        assert probe.calls == ["rpc", "tty"]
        assert probe.states == [ProbeState.PROBING_RPC, ProbeState.PROBING_TTY]
        assert probe.state is ProbeState.SUCCEEDED

    def test_both_fail_raises_tty_error(self):
        probe = ScriptedProbe(ExecutionFailedError("rpc"), ParseFailedError("tty"))

        with pytest.raises(ParseFailedError) as exc_info:
            probe.probe_sync()

        assert exc_info.value == ParseFailedError("tty")
        assert exc_info.value.__cause__ is None
        assert probe.state is ProbeState.FAILED

    def test_rpc_failure_logged_as_warning(self, caplog):
        probe = ScriptedProbe(ExecutionFailedError("RPC error: boom"), _snapshot())

        with caplog.at_level("WARNING", logger="quotaprobe.probes.base"):
            probe.probe_sync()

        assert "RPC failed: RPC error: boom" in caplog.text

    def test_tty_only_probe(self):
        snapshot = _snapshot()
        probe = ScriptedProbe(ParseFailedError("unused"), snapshot, supports_rpc=False)

        assert probe.probe_sync() is snapshot
        assert probe.calls == ["tty"]

    def test_empty_attempt_is_execution_failure(self):
        """An attempt with neither snapshot nor error still fails cleanly."""
        probe = ScriptedProbe(None, None, supports_rpc=False)

        with patch.object(ProbeAttempt, "run", return_value=ProbeAttempt(path="tty")):
            with pytest.raises(ExecutionFailedError):
                probe.probe_sync()

        assert probe.state is ProbeState.FAILED

    def test_finish_requires_snapshot(self):
        probe = ScriptedProbe(None, None)

        with pytest.raises(ExecutionFailedError, match="rpc probe finished without a snapshot"):
            probe._finish(ProbeAttempt(path="rpc"))

    def test_state_resets_on_next_run(self):
        probe = ScriptedProbe(ExecutionFailedError("rpc"), ParseFailedError("tty"))
        with pytest.raises(ParseFailedError):
            probe.probe_sync()

        probe._tty = _snapshot()
        probe.probe_sync()

        assert probe.state is ProbeState.SUCCEEDED


class TestAsyncProbe:
    """Tests for async probe()."""

    @pytest.mark.asyncio
    async def test_returns_snapshot(self):
        snapshot = _snapshot()

        assert await ScriptedProbe(snapshot, None).probe() is snapshot

    @pytest.mark.asyncio
    async def test_propagates_probe_error(self):
        probe = ScriptedProbe(ExecutionFailedError("rpc"), CLINotFoundError("fake-cli"))

        with pytest.raises(CLINotFoundError):
            await probe.probe()

    def test_safety_timeout_covers_both_paths_and_teardown(self):
        probe = ScriptedProbe(None, None)
        probe.timeout_seconds = 12.0

        assert probe.safety_timeout_seconds == 2 * 12.0 + 5.0 + 10.0

    @pytest.mark.asyncio
    async def test_safety_timeout(self):
        probe = ScriptedProbe(None, None)

        with (
            patch.object(
                ScriptedProbe, "safety_timeout_seconds", new_callable=PropertyMock, return_value=0.1
            ),
            patch.object(probe, "_run_paths", side_effect=lambda: time.sleep(0.5)),
        ):
            with pytest.raises(ProbeTimeoutError):
                await probe.probe()

        assert probe.state is ProbeState.FAILED


class HangingProbe(BaseUsageProbe):
    """Probe whose paths run real processes that never finish on their own."""

    def __init__(
        self, tmp_path: Path, *, rpc_hangs: bool = False, safety_timeout: float = 1.0
    ) -> None:
        super().__init__("sh", timeout_seconds=30.0)
        self.rpc_hangs = rpc_hangs
        self._safety_timeout = safety_timeout
        self.pid_file = tmp_path / "tty.pid"
        self.rpc_pids: list[int] = []
        self.tty_started = False

    @property
    def provider_id(self) -> str:
        return "hanging"

    @property
    def safety_timeout_seconds(self) -> float:
        return self._safety_timeout

    def _probe_via_rpc(self) -> UsageSnapshot:
        if self.rpc_hangs:
            with ProcessSession(["sleep", "30"], tracker=self._tracker) as session:
                self.rpc_pids.append(session.pid)
                session.read_line(self.timeout_seconds)
        raise ExecutionFailedError("Server closed unexpectedly")

    def _probe_via_tty(self) -> UsageSnapshot:
        self.tty_started = True
        script = f'echo $$ > "{self.pid_file}"; while :; do echo tick; sleep 0.2; done'
        PTYCommandRunner().run(
            "sh",
            options=PTYRunOptions(
                timeout_seconds=self.timeout_seconds,
                idle_timeout_seconds=5.0,
                extra_args=("-c", script),
            ),
            tracker=self._tracker,
        )
        raise ParseFailedError("No figures on screen")


def _is_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    return False


async def _wait_until(condition, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        await asyncio.sleep(0.05)
    return condition()


@pytest.mark.pty
class TestProbeTeardown:
    """Processes must not outlive a timed-out or cancelled probe."""

    @pytest.mark.asyncio
    async def test_safety_timeout_kills_tty_process(self, tmp_path):
        probe = HangingProbe(tmp_path)

        with pytest.raises(ProbeTimeoutError):
            await probe.probe()

        pid = int(probe.pid_file.read_text())
        assert _is_gone(pid)
        assert probe.state is ProbeState.FAILED

    @pytest.mark.asyncio
    async def test_safety_timeout_kills_rpc_process_and_skips_tty(self, tmp_path):
        probe = HangingProbe(tmp_path, rpc_hangs=True)

        with pytest.raises(ProbeTimeoutError):
            await probe.probe()

        assert len(probe.rpc_pids) == 1
        assert _is_gone(probe.rpc_pids[0])
        assert not probe.tty_started

    @pytest.mark.asyncio
    async def test_cancelled_task_kills_process(self, tmp_path):
        probe = HangingProbe(tmp_path, safety_timeout=30.0)
        task = asyncio.create_task(probe.probe())
        assert await _wait_until(lambda: probe.pid_file.exists() and probe.pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        pid = int(probe.pid_file.read_text())
        assert await _wait_until(lambda: _is_gone(pid))

    def test_cancel_from_another_thread(self, tmp_path):
        probe = HangingProbe(tmp_path, safety_timeout=30.0)
        timer = threading.Timer(0.5, probe.cancel)
        timer.start()
        try:
            with pytest.raises(ProbeTimeoutError):
                probe.probe_sync()
        finally:
            timer.cancel()

        assert _is_gone(int(probe.pid_file.read_text()))


class StaticProbe:
    """Minimal UsageProbe implementation for probe_all."""

    def __init__(self, provider_id: str, outcome) -> None:
        self._provider_id = provider_id
        self._outcome = outcome

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def is_available(self) -> bool:
        return True

    async def probe(self) -> UsageSnapshot:
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome


class TestProbeAll:
    """Tests for probe_all function."""

    @pytest.mark.asyncio
    async def test_results_in_input_order(self):
        ok = _snapshot(provider_id="a")
        error = CLINotFoundError("b")

        results = await probe_all([StaticProbe("a", ok), StaticProbe("b", error)])

        assert results == [ok, error]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await probe_all([]) == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self):
        with pytest.raises(RuntimeError):
            await probe_all([StaticProbe("a", RuntimeError("bug"))])
