"""
Worker-agent stand-in.

Registers its cell with the store, accepts evacuation and stop-instance
requests on its admin listener, and exits 0 once evacuation finishes or
its evacuation timeout passes. In-flight requests delay the exit by at
most the graceful shutdown interval. The optional ``evacuate_status`` and
``exit_code`` config keys make it refuse evacuation or exit uncleanly.
"""

import asyncio
import os
import ssl
import time

import aiohttp
from aiohttp import web

from component_config import (
    announce,
    install_stop_handlers,
    load_config,
    parse_duration,
    split_address,
)


class Agent:
    def __init__(self, config: dict) -> None:
        self.config = config
        self.cell_id: str = config["cell_id"]
        self.store_url: str = config["store_url"]
        self.evacuation_timeout = parse_duration(config["evacuation_timeout"])
        self.graceful_shutdown_interval = parse_duration(
            config["graceful_shutdown_interval"]
        )

        self.in_flight = 0
        self.done = asyncio.Event()
        self.evacuation: asyncio.Task | None = None
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=2),
        )

    async def register(self):
        async with self.session.post(
            f"{self.store_url}/v1/cells/register",
            json={
                "cell_id": self.cell_id,
                "address": self.config["listen_address"],
            },
        ) as response:
            response.raise_for_status()

    async def evacuate(self):
        deadline = time.monotonic() + self.evacuation_timeout

        while time.monotonic() < deadline:
            try:
                async with self.session.post(
                    f"{self.store_url}/v1/cells/evacuate",
                    json={"cell_id": self.cell_id},
                ) as response:
                    remaining = (await response.json()).get("remaining")

            except aiohttp.ClientError:
                remaining = None

            if remaining == 0:
                break

            await asyncio.sleep(0.1)

        print(f"agent {self.cell_id} evacuated", flush=True)
        self.done.set()

    async def handle_evacuate(self, request: web.Request) -> web.Response:
        status = int(self.config.get("evacuate_status", 202))
        if status != 202:
            return web.Response(status=status, text="evacuation refused")

        if self.evacuation is None:
            self.evacuation = asyncio.create_task(self.evacuate())

        return web.Response(status=202, text="evacuating")

    async def handle_stop(self, request: web.Request) -> web.Response:
        instance_guid = request.match_info["instance_guid"]

        self.in_flight += 1
        try:
            process = await asyncio.create_subprocess_exec(
                self.config["backend_plugin"],
                *self.config.get("backend_plugin_flags", []),
                "delete",
                instance_guid,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            output, _ = await process.communicate()

        finally:
            self.in_flight -= 1

        if process.returncode != 0:
            return web.Response(status=500, text=output.decode(errors="replace"))

        return web.Response(status=200, text="stopped")

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="ok")

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/evacuate", self.handle_evacuate)
        app.router.add_post(
            "/v1/lrps/{process_guid}/instances/{instance_guid}/stop",
            self.handle_stop,
        )
        app.router.add_get("/ping", self.handle_ping)

        return app

    def ssl_context(self) -> ssl.SSLContext | None:
        if self.config.get("admin_scheme") != "https" or not self.config.get("server_cert"):
            return None

        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(self.config["server_cert"], self.config["server_key"])

        if self.config.get("ca_cert"):
            context.load_verify_locations(self.config["ca_cert"])
            context.verify_mode = ssl.CERT_REQUIRED

        return context


async def main():
    config = load_config()
    host, port = split_address(config["listen_address"])

    stop = asyncio.Event()
    install_stop_handlers(stop)

    agent = Agent(config)
    runner = web.AppRunner(agent.build_app())
    await runner.setup()

    site = web.TCPSite(runner, host, port, ssl_context=agent.ssl_context())
    await site.start()

    await agent.register()
    announce(f"agent {agent.cell_id}")

    stopped = asyncio.create_task(stop.wait())
    evacuated = asyncio.create_task(agent.done.wait())
    await asyncio.wait([stopped, evacuated], return_when=asyncio.FIRST_COMPLETED)

    deadline = time.monotonic() + agent.graceful_shutdown_interval
    while agent.in_flight and time.monotonic() < deadline:
        await asyncio.sleep(0.01)

    print(f"agent {agent.cell_id} exiting with {agent.in_flight} request(s) in flight", flush=True)
    os._exit(int(agent.config.get("exit_code", 0)))


if __name__ == "__main__":
    asyncio.run(main())
