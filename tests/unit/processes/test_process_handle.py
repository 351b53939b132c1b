import asyncio
import os
import sys

import pytest

from cellsuite.errors import (
    ProcessExitedError,
    StartupError,
    StartupTimeoutError,
)
from cellsuite.processes import (
    ComponentSpec,
    HealthCheck,
    ProcessHandle,
    ProcessStatus,
    SignalKind,
    Started,
    tcp_port_open,
)


SLEEPER = """
import time
print("component started", flush=True)
time.sleep(60)
"""


FORKING_CRASHER = """
import subprocess, sys
child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
open({pid_file!r}, "w").write(str(child.pid))
raise SystemExit(1)
"""


class TestStartup:
    @pytest.mark.asyncio
    async def test_ready_when_output_matches(self, python_component):
        handle = ProcessHandle(
            python_component(
                "sleeper",
                """
                import time
                print("booting", flush=True)
                time.sleep(0.2)
                print("component started", flush=True)
                time.sleep(60)
                """,
            )
        )

        try:
            await handle.start()

            assert handle.status == ProcessStatus.RUNNING
            assert handle.pid is not None
            assert handle.exit_code is None
            assert "booting" in handle.output

        finally:
            await handle.stop(grace_period=2)

        assert handle.status == ProcessStatus.EXITED
        assert handle.exit_code is not None

    @pytest.mark.asyncio
    async def test_started_readiness_returns_immediately(self, python_component):
        handle = ProcessHandle(
            python_component(
                "silent",
                "import time; time.sleep(60)",
                readiness=Started(),
            )
        )

        try:
            await handle.start()
            assert handle.status == ProcessStatus.RUNNING

        finally:
            await handle.stop(grace_period=2)

    @pytest.mark.asyncio
    async def test_health_check_readiness(self, python_component, port_allocator):
        port = port_allocator.claim_ports(1)

        handle = ProcessHandle(
            python_component(
                "listener",
                f"""
                import socket, time
                time.sleep(0.3)
                server = socket.socket()
                server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server.bind(("127.0.0.1", {port}))
                server.listen()
                time.sleep(60)
                """,
                readiness=HealthCheck(
                    tcp_port_open("127.0.0.1", port),
                    interval=0.05,
                ),
            )
        )

        try:
            await handle.start()
            assert handle.status == ProcessStatus.RUNNING

        finally:
            await handle.stop(grace_period=2)

    @pytest.mark.asyncio
    async def test_env_overrides_reach_the_process(self, python_component):
        handle = ProcessHandle(
            python_component(
                "env-reader",
                """
                import os, time
                print(os.environ["CELLSUITE_TEST_MARKER"], "started", flush=True)
                time.sleep(60)
                """,
                env={"CELLSUITE_TEST_MARKER": "marker-value"},
            )
        )

        try:
            await handle.start()
            assert any("marker-value" in line for line in handle.output)

        finally:
            await handle.stop(grace_period=2)

    @pytest.mark.asyncio
    async def test_timeout_kills_the_process(self, python_component):
        handle = ProcessHandle(
            python_component(
                "never-ready",
                "import time; time.sleep(60)",
            ),
            startup_timeout=0.5,
        )

        with pytest.raises(StartupTimeoutError) as error:
            await handle.start()

        assert error.value.timeout == 0.5
        assert handle.exited
        assert handle.exit_code == -SignalKind.KILL.value
        assert handle.status == ProcessStatus.EXITED

    @pytest.mark.asyncio
    async def test_exit_before_ready_reports_code_and_output(self, python_component):
        handle = ProcessHandle(
            python_component(
                "crasher",
                """
                print("config is invalid", flush=True)
                raise SystemExit(3)
                """,
            )
        )

        with pytest.raises(ProcessExitedError) as error:
            await handle.start()

        assert error.value.exit_code == 3
        assert "config is invalid" in error.value.output
        assert "config is invalid" in str(error.value)
        assert handle.exit_code == 3

    @pytest.mark.asyncio
    async def test_exit_before_ready_reaps_forked_children(
        self,
        python_component,
        tmp_path,
        process_gone,
    ):
        pid_file = tmp_path / "child.pid"

        handle = ProcessHandle(
            python_component(
                "forking-crasher",
                FORKING_CRASHER.format(pid_file=str(pid_file)),
            )
        )

        with pytest.raises(ProcessExitedError) as error:
            await handle.start()

        assert error.value.exit_code == 1
        assert await process_gone(int(pid_file.read_text()))

    @pytest.mark.asyncio
    async def test_timeout_reports_last_health_check_error(self, python_component):

        async def refusing() -> bool:
            raise ConnectionRefusedError("nothing listening")

        handle = ProcessHandle(
            python_component(
                "unhealthy",
                "import time; time.sleep(60)",
                readiness=HealthCheck(refusing, interval=0.05),
            ),
            startup_timeout=0.5,
        )

        with pytest.raises(StartupTimeoutError) as error:
            await handle.start()

        assert isinstance(error.value.last_error, ConnectionRefusedError)
        assert "nothing listening" in str(error.value)

    @pytest.mark.asyncio
    async def test_timeout_without_health_check_has_no_last_error(self, python_component):
        handle = ProcessHandle(
            python_component(
                "quiet",
                "import time; time.sleep(60)",
            ),
            startup_timeout=0.3,
        )

        with pytest.raises(StartupTimeoutError) as error:
            await handle.start()

        assert error.value.last_error is None
        assert "health check" not in str(error.value)

    @pytest.mark.asyncio
    async def test_missing_executable_raises_startup_error(self, tmp_path):
        handle = ProcessHandle(
            ComponentSpec(
                name="missing",
                executable=str(tmp_path / "does-not-exist"),
            )
        )

        with pytest.raises(StartupError):
            await handle.start()

        assert handle.status == ProcessStatus.EXITED

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        try:
            await handle.start()

            with pytest.raises(RuntimeError):
                await handle.start()

        finally:
            await handle.stop(grace_period=2)


class TestWait:
    @pytest.mark.asyncio
    async def test_every_waiter_observes_the_exit(self, python_component):
        handle = ProcessHandle(
            python_component(
                "short-lived",
                "import time; time.sleep(0.3); raise SystemExit(4)",
                readiness=Started(),
            )
        )

        await handle.start()

        assert await asyncio.gather(
            handle.wait(timeout=5),
            handle.wait(timeout=5),
            handle.wait(timeout=5),
        ) == [4, 4, 4]

        assert await handle.wait(timeout=1) == 4

    @pytest.mark.asyncio
    async def test_wait_times_out(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        try:
            await handle.start()

            with pytest.raises(asyncio.TimeoutError):
                await handle.wait(timeout=0.2)

            assert handle.exit_code is None

        finally:
            await handle.stop(grace_period=2)

    @pytest.mark.asyncio
    async def test_wait_before_start_is_an_error(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        with pytest.raises(RuntimeError):
            await handle.wait(timeout=1)


class TestSignalAndStop:
    @pytest.mark.asyncio
    async def test_signal_terminates_the_process(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        await handle.start()

        assert handle.signal(SignalKind.TERMINATE) is True
        assert await handle.wait(timeout=5) == -SignalKind.TERMINATE.value

        await handle.stop()

    @pytest.mark.asyncio
    async def test_signal_after_exit_is_a_no_op(self, python_component):
        handle = ProcessHandle(
            python_component(
                "short-lived",
                "raise SystemExit(0)",
                readiness=Started(),
            )
        )

        await handle.start()
        await handle.wait(timeout=5)

        assert handle.signal(SignalKind.INTERRUPT) is False
        assert handle.signal(SignalKind.KILL) is False

    @pytest.mark.asyncio
    async def test_signal_before_start_is_a_no_op(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        assert handle.signal(SignalKind.KILL) is False

    @pytest.mark.asyncio
    async def test_stop_interrupts_gracefully(self, python_component):
        handle = ProcessHandle(
            python_component(
                "graceful",
                """
                import signal, sys, time
                signal.signal(signal.SIGINT, lambda *_: sys.exit(0))
                print("component started", flush=True)
                time.sleep(60)
                """,
            )
        )

        await handle.start()

        assert await handle.stop(grace_period=5) == 0

    @pytest.mark.asyncio
    async def test_stop_escalates_to_kill(self, python_component):
        handle = ProcessHandle(
            python_component(
                "stubborn",
                """
                import signal, time
                signal.signal(signal.SIGINT, signal.SIG_IGN)
                print("component started", flush=True)
                time.sleep(60)
                """,
            )
        )

        await handle.start()

        assert await handle.stop(grace_period=0.3) == -SignalKind.KILL.value

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, python_component):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        await handle.start()

        first = await handle.stop(grace_period=2)
        second = await handle.stop(grace_period=2)

        assert first == second

    @pytest.mark.asyncio
    async def test_stop_reaps_forked_children(self, python_component, tmp_path, process_gone):
        pid_file = tmp_path / "child.pid"

        handle = ProcessHandle(
            python_component(
                "parent",
                f"""
                import subprocess, sys, time
                child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
                open({str(pid_file)!r}, "w").write(str(child.pid))
                print("component started", flush=True)
                time.sleep(60)
                """,
            )
        )

        await handle.start()
        await handle.stop(grace_period=2)

        assert await process_gone(int(pid_file.read_text()))

    @pytest.mark.asyncio
    async def test_reap_skips_a_reused_leader_pid(self, python_component, monkeypatch):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        await handle.start()
        await handle.stop(grace_period=2)

        killed: list[int] = []
        monkeypatch.setattr(os, "kill", lambda pid, signum: None)
        monkeypatch.setattr(os, "killpg", lambda pgid, signum: killed.append(pgid))

        handle._reap_session()

        assert killed == []

    @pytest.mark.asyncio
    async def test_reap_kills_the_group_of_a_vanished_leader(self, python_component, monkeypatch):
        handle = ProcessHandle(python_component("sleeper", SLEEPER))

        await handle.start()
        await handle.stop(grace_period=2)

        def vanished(pid, signum):
            raise ProcessLookupError(pid)

        killed: list[int] = []
        monkeypatch.setattr(os, "kill", vanished)
        monkeypatch.setattr(os, "killpg", lambda pgid, signum: killed.append(pgid))

        handle._reap_session()

        assert killed == [handle.pid]

    @pytest.mark.asyncio
    async def test_async_context_manager(self, python_component):
        async with ProcessHandle(python_component("sleeper", SLEEPER)) as handle:
            assert handle.status == ProcessStatus.RUNNING

        assert handle.exited


class TestComponentSpec:
    def test_is_immutable(self):
        spec = ComponentSpec(name="store", executable=sys.executable)

        with pytest.raises(AttributeError):
            spec.name = "router"

    def test_derived_specs_leave_the_original_untouched(self):
        spec = ComponentSpec(
            name="store",
            executable="bbs",
            args=("-config", "store.json"),
            env={"A": "1"},
        )

        derived = spec.with_args("-debug").with_env(B="2")

        assert spec.args == ("-config", "store.json")
        assert dict(spec.env) == {"A": "1"}
        assert derived.command == ["bbs", "-config", "store.json", "-debug"]
        assert dict(derived.env) == {"A": "1", "B": "2"}

    def test_requires_name_and_executable(self):
        with pytest.raises(ValueError):
            ComponentSpec(name="", executable="bbs")

        with pytest.raises(ValueError):
            ComponentSpec(name="store", executable="")
