"""
Pytest configuration shared by unit and integration tests.

Fake platform components live in tests/fixtures as small aiohttp programs.
They are started through session-scoped launcher scripts so the harness
sees ordinary executables, exactly as it would see the real binaries.
"""

import asyncio
import datetime
import ipaddress
import os
import sys
import textwrap
from pathlib import Path
from typing import Awaitable, Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from cellsuite.cluster import ComponentFactory
from cellsuite.env import Env
from cellsuite.logging import LoggingConfig
from cellsuite.ports import PortAllocator
from cellsuite.processes import ComponentSpec, OutputPattern, ReadinessCheck


FIXTURES_DIRECTORY = Path(__file__).parent / "fixtures"

FAKE_COMPONENTS = (
    "fake_store",
    "fake_router",
    "fake_idle",
    "fake_agent",
    "fake_plugin",
)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: starts fake platform components"
    )


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug")
    yield
    config.update(log_level="error")


@pytest.fixture(scope="session")
def launchers(tmp_path_factory) -> dict[str, str]:
    directory = tmp_path_factory.mktemp("launchers")

    paths: dict[str, str] = {}
    for name in FAKE_COMPONENTS:
        launcher = directory / name
        launcher.write_text(
            f'#!/bin/sh\nexec "{sys.executable}" "{FIXTURES_DIRECTORY / f"{name}.py"}" "$@"\n'
        )
        launcher.chmod(0o755)
        paths[name] = str(launcher)

    return paths


@pytest.fixture(scope="session")
def cluster_env(launchers) -> Env:
    return Env(
        CELLSUITE_STORE_BIN=launchers["fake_store"],
        CELLSUITE_ROUTER_BIN=launchers["fake_router"],
        CELLSUITE_AUCTIONEER_BIN=launchers["fake_idle"],
        CELLSUITE_ROUTE_EMITTER_BIN=launchers["fake_idle"],
        CELLSUITE_AGENT_BIN=launchers["fake_agent"],
        CELLSUITE_BACKEND_PLUGIN_BIN=launchers["fake_plugin"],
        CELLSUITE_BACKEND_PLUGIN_FLAGS="--config,plugin.yml",
        CELLSUITE_ADMIN_SCHEME="http",
        CELLSUITE_STARTUP_TIMEOUT="20s",
        CELLSUITE_GRACE_PERIOD="3s",
        CELLSUITE_EVENTUALLY_TIMEOUT="20s",
        CELLSUITE_POLL_INTERVAL="100ms",
        CELLSUITE_CONSISTENTLY_WINDOW="500ms",
    )


@pytest.fixture(scope="session")
def port_allocator(request, cluster_env: Env) -> PortAllocator:
    worker_id = getattr(request.config, "workerinput", {}).get("workerid")
    return PortAllocator.for_worker(cluster_env, worker_id)


@pytest.fixture
def component_factory(
    cluster_env: Env,
    port_allocator: PortAllocator,
    tmp_path: Path,
) -> ComponentFactory:
    return ComponentFactory.create(
        cluster_env,
        port_allocator,
        str(tmp_path / "configs"),
    )


@pytest.fixture
def python_component() -> Callable[..., ComponentSpec]:
    """
    Build a ComponentSpec running an inline Python program. Ready by
    default once the program prints a line containing ``started``.
    """

    def create(
        name: str,
        code: str,
        readiness: ReadinessCheck | None = None,
        **kwargs,
    ) -> ComponentSpec:
        return ComponentSpec(
            name=name,
            executable=sys.executable,
            args=("-c", textwrap.dedent(code)),
            readiness=readiness or OutputPattern(r"\bstarted\b"),
            **kwargs,
        )

    return create


@pytest.fixture
def executable_script(tmp_path: Path) -> Callable[[str, str], str]:

    def create(name: str, body: str) -> str:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + textwrap.dedent(body))
        script.chmod(0o755)
        return str(script)

    return create


@pytest.fixture
def process_gone() -> Callable[[int], Awaitable[bool]]:
    """
    Wait up to ``timeout`` seconds for ``pid`` to vanish or become a zombie.
    """

    async def wait_gone(pid: int, timeout: float = 5.0) -> bool:
        deadline = asyncio.get_running_loop().time() + timeout

        while True:
            try:
                with open(f"/proc/{pid}/stat") as stat:
                    if stat.read().split()[2] == "Z":
                        return True

            except FileNotFoundError:
                return True

            if asyncio.get_running_loop().time() >= deadline:
                return False

            await asyncio.sleep(0.1)

    return wait_gone


@pytest.fixture
def short_scratch_env() -> Env:
    # Unix socket paths are limited to ~100 bytes, pytest's tmp_path is not.
    return Env(CELLSUITE_SCRATCH_DIRECTORY="/tmp" if os.path.isdir("/tmp") else os.getcwd())


def _write_pem(path: Path, data: bytes) -> str:
    path.write_bytes(data)
    return str(path)


@pytest.fixture(scope="session")
def tls_material(tmp_path_factory) -> dict[str, str]:
    """
    A throwaway CA plus one leaf certificate for 127.0.0.1, usable both as
    an agent's server certificate and as the harness's client certificate.
    """
    directory = tmp_path_factory.mktemp("tls")
    now = datetime.datetime.now(datetime.timezone.utc)

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "cellsuite test CA")])
    ca_cert = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )

    leaf_key = ec.generate_private_key(ec.SECP256R1())
    leaf_cert = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "127.0.0.1")]))
        .issuer_name(ca_name)
        .public_key(leaf_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                    x509.DNSName("localhost"),
                ]
            ),
            critical=False,
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [
                    ExtendedKeyUsageOID.SERVER_AUTH,
                    ExtendedKeyUsageOID.CLIENT_AUTH,
                ]
            ),
            critical=False,
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()),
            critical=False,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(leaf_key.public_key()),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )

    return {
        "ca_cert": _write_pem(
            directory / "ca.crt",
            ca_cert.public_bytes(serialization.Encoding.PEM),
        ),
        "cert": _write_pem(
            directory / "agent.crt",
            leaf_cert.public_bytes(serialization.Encoding.PEM),
        ),
        "key": _write_pem(
            directory / "agent.key",
            leaf_key.private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            ),
        ),
    }


@pytest.fixture(scope="session")
def tls_cluster_env(cluster_env: Env, tls_material: dict[str, str]) -> Env:
    return cluster_env.model_copy(
        update={
            "CELLSUITE_ADMIN_SCHEME": "https",
            "CELLSUITE_TLS_CA_CERT": tls_material["ca_cert"],
            "CELLSUITE_TLS_CLIENT_CERT": tls_material["cert"],
            "CELLSUITE_TLS_CLIENT_KEY": tls_material["key"],
        }
    )
