"""
Runtime of an installed fault shim.

The shim stands in for a real binary. It records the invocation in its
trace file, asks the harness's decision server whether to delay, sleeps
if told to, then replaces itself with the real binary so the caller sees
the real streams and exit code. An unreachable server means no delay.
"""

import os
import socket
import time

import msgspec

from .models import FaultRequest, FaultVerdict, ShimConfig


def run_shim(config_path: str, args: list[str]):
    with open(config_path, "rb") as config_file:
        config = msgspec.json.decode(config_file.read(), type=ShimConfig)

    trace(config.trace_path, " ".join(args))

    try:
        verdict = request_verdict(config, args)

    except (OSError, msgspec.DecodeError) as err:
        trace(config.trace_path, f"decision server unreachable - {err}")
        verdict = FaultVerdict()

    if verdict.delay_seconds > 0:
        trace(config.trace_path, f"delaying {verdict.delay_seconds}s")
        time.sleep(verdict.delay_seconds)

    os.execv(config.target, [config.target, *args])


def request_verdict(config: ShimConfig, args: list[str]) -> FaultVerdict:
    request = FaultRequest(
        shim_id=config.shim_id,
        args=args,
        pid=os.getpid(),
    )

    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as connection:
        connection.settimeout(config.connect_timeout)
        connection.connect(config.socket_path)
        connection.sendall(msgspec.json.encode(request) + b"\n")

        response = b""
        while not response.endswith(b"\n"):
            chunk = connection.recv(4096)
            if not chunk:
                break

            response += chunk

    return msgspec.json.decode(response.strip(), type=FaultVerdict)


def trace(trace_path: str, message: str):
    with open(trace_path, "a") as trace_file:
        trace_file.write(f"{int(time.time())} {message}\n")
