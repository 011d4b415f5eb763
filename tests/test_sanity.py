# MDM Client
# File: tests/test_sanity.py
# Version: v2

"""Basic sanity tests for configuration and client wiring."""

import asyncio

import httpx
import pytest

from mdm_client import __version__
from mdm_client.client import MdmClient
from mdm_client.config import MdmClientConfig
from mdm_client.models import SourceSystem
from mdm_client.transport import HttpxTransport


def test_version_is_exposed() -> None:
    assert isinstance(__version__, str)


def test_config_from_env_minimal(monkeypatch) -> None:
    for name in (
        "MDM_BASE_URL",
        "MDM_REQUEST_SOURCE_SYSTEM",
        "MDM_CANONICAL_SYSTEM",
        "MDM_VERIFY_TLS",
        "MDM_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = MdmClientConfig.from_env()

    assert config.base_url is None
    assert config.canonical_system == "Nexus"
    assert config.verify_tls is True
    assert config.timeout_seconds == 30.0


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("MDM_BASE_URL", "https://mdm.example.com/api/")
    monkeypatch.setenv("MDM_REQUEST_SOURCE_SYSTEM", "Endur")
    monkeypatch.setenv("MDM_USER_NAME", "svc-trading")
    monkeypatch.setenv("MDM_VERIFY_TLS", "no")
    monkeypatch.setenv("MDM_TIMEOUT_SECONDS", "100000")

    config = MdmClientConfig.from_env()

    assert config.base_url == "https://mdm.example.com/api"
    assert config.source_system_name == "Endur"
    assert config.resolve_user_name() == "svc-trading"
    assert config.verify_tls is False
    assert config.timeout_seconds == 600.0
    assert config.entity_uri("SourceSystem") == "https://mdm.example.com/api/sourcesystem"


def test_entity_uri_requires_base_url() -> None:
    config = MdmClientConfig(base_url=None)

    with pytest.raises(RuntimeError):
        config.entity_uri("SourceSystem")


def test_client_wires_services_from_config() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(404)

    config = MdmClientConfig(
        base_url="http://mdm.test/api",
        source_system_name="Endur",
        user_name="bob",
        authorization="Bearer abc",
    )
    client = MdmClient(
        config=config,
        transport=HttpxTransport(config, transport=httpx.MockTransport(handler)),
    )

    service = client.entity_service(SourceSystem)
    assert client.entity_service(SourceSystem) is service
    assert service.base_uri == "http://mdm.test/api/sourcesystem"

    async def run():
        async with client:
            return await service.get(3)

    response = asyncio.run(run())

    assert response.is_valid is False
    assert response.fault.message == "NotFound"
    assert seen[0].headers["UserName"] == "bob"
    assert seen[0].headers["Authorization"] == "Bearer abc"
