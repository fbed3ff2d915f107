"""
Pytest configuration and shared fixtures for toolmesh tests.
"""

import io
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from tests.mocks import FakeClient, FakeTool
from toolmesh.config.models import CatalogRetryConfig, ConnectionConfig
from toolmesh.logging import LogConfig, ToolmeshLogger
from toolmesh.mcp import ServerRegistry, ToolServerConnection
from toolmesh.telemetry import reset_telemetry
from toolmesh.types import LogFormat, LogLevel, RetryConfig

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


# =============================================================================
# Telemetry
# =============================================================================


@pytest.fixture(autouse=True)
def _clean_telemetry() -> Generator[None, None, None]:
    """Every test starts without telemetry state."""
    reset_telemetry()
    yield
    reset_telemetry()


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture
def log_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_output: io.StringIO) -> ToolmeshLogger:
    """Debug-level JSON logger writing to an in-memory buffer."""
    return ToolmeshLogger(
        LogConfig(level=LogLevel.DEBUG, format=LogFormat.JSON, output=log_output)
    )


# =============================================================================
# Connection Fixtures
# =============================================================================


@pytest.fixture
def fast_settings() -> ConnectionConfig:
    """Short timeouts and zero-delay retries."""
    return ConnectionConfig(
        connection_timeout_ms=500,
        call_timeout_ms=200,
        close_timeout_seconds=0.5,
        tool_retry=RetryConfig(max_attempts=2, delay_seconds=0.0),
        catalog_retry=CatalogRetryConfig(max_attempts=2, delay_seconds=0.0),
    )


@pytest.fixture
def clients() -> dict[str, FakeClient]:
    """Fake clients by endpoint; registries built by ``make_registry`` use them."""
    return {}


@pytest.fixture
def make_registry(
    fast_settings: ConnectionConfig, clients: dict[str, FakeClient]
) -> Callable[..., ServerRegistry]:
    """Build a registry whose connections talk to ``clients[endpoint]``."""

    def _make(logger: ToolmeshLogger | None = None) -> ServerRegistry:
        def connection_factory(
            server_id: str, endpoint: str, description: str | None
        ) -> ToolServerConnection:
            return ToolServerConnection(
                server_id=server_id,
                endpoint=endpoint,
                description=description,
                settings=fast_settings,
                logger=logger,
                client_factory=lambda url: clients[url],
            )

        return ServerRegistry(
            settings=fast_settings, logger=logger, connection_factory=connection_factory
        )

    return _make


@pytest.fixture
def chain_client(clients: dict[str, FakeClient]) -> FakeClient:
    """The ``chain`` server: one gasPrice tool."""
    client = FakeClient(
        [FakeTool("gasPrice", description="Current gas price", result="42 gwei")]
    )
    clients["http://chain.local/mcp"] = client
    return client


# =============================================================================
# Markers Configuration
# =============================================================================


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
