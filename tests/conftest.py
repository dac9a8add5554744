"""Pytest fixtures and configuration."""

import pytest
import pytest_asyncio

from anonyflow.core.registry import create_default_registry
from anonyflow.execution.connectors import (
    ConnectorFactory,
    MemoryInputConnector,
    MemoryOutputConnector,
)
from anonyflow.execution.models import SessionConfig
from anonyflow.execution.session_manager import SessionManager


@pytest.fixture
def registry():
    """Fresh registry with every built-in technique."""
    return create_default_registry()


@pytest.fixture
def memory_source():
    return MemoryInputConnector()


@pytest.fixture
def memory_sink():
    return MemoryOutputConnector()


@pytest.fixture
def connector_factory(memory_source, memory_sink):
    """Factory binding every api source/target to the memory connectors."""
    factory = ConnectorFactory()
    factory.register_input("api", lambda source: memory_source)
    factory.register_output("api", lambda target: memory_sink)
    return factory


@pytest.fixture
def session_config():
    """Session masking the email field of records polled from an api source."""
    return SessionConfig(
        name="customers",
        description="Customer stream",
        technique_id="hash-sha256",
        input_source={
            "type": "api",
            "name": "crm",
            "configuration": {"endpoint": "memory://crm", "poll_interval": 60000},
            "schema": [
                {
                    "field_name": "email",
                    "data_type": "string",
                    "is_sensitive": True,
                    "anonymization_technique": "masking-partial",
                },
                {"field_name": "city", "data_type": "string", "is_sensitive": False},
            ],
        },
        output_target={"type": "api", "name": "warehouse"},
    )


@pytest_asyncio.fixture
async def manager(registry, connector_factory):
    """Session manager wired to the memory connectors."""
    manager = SessionManager(registry=registry, connectors=connector_factory)
    yield manager
    await manager.cleanup()
