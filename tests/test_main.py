"""
Tests for application wiring in ``main``.
"""

from datetime import timedelta

from connectors.store import InMemoryConnectionStore
from main import build_connection_manager


class TestBuildConnectionManager:
    def test_defaults(self, settings):
        manager = build_connection_manager(settings)

        assert isinstance(manager.store, InMemoryConnectionStore)
        assert manager.refresh_buffer == timedelta(minutes=5)
        assert manager.state_signer.ttl_seconds == 600
        assert manager.cipher.enabled
        assert "reddit" in manager.registry.list_configured()

    def test_refresh_buffer_from_settings(self, settings):
        tuned = settings.model_copy(
            update={"refresh_buffer_seconds": 3600, "oauth_state_ttl_seconds": 120}
        )

        manager = build_connection_manager(tuned)

        assert manager.refresh_buffer == timedelta(hours=1)
        assert manager.state_signer.ttl_seconds == 120
