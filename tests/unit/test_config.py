"""Tests for environment configuration."""

import pytest

from railbridge.config import (
    BRIDGE_PROVIDER_HTTP,
    BRIDGE_PROVIDER_POOL,
    DEFAULT_PORT,
    ConfigError,
    FacilitatorSettings,
)

KEY = "0x" + "11" * 32


def load(**env) -> FacilitatorSettings:
    return FacilitatorSettings.from_env(environ=env, load_dotenv_file=False)


class TestFacilitatorSettings:
    def test_defaults(self):
        settings = load(EVM_PRIVATE_KEY=KEY)

        assert settings.networks == ["eip155:84532"]
        assert settings.cross_chain_enabled is True
        assert settings.bridge_provider == BRIDGE_PROVIDER_POOL
        assert settings.bridge_database_url is None
        assert settings.port == DEFAULT_PORT
        assert settings.log_level == "INFO"

    def test_private_key_required(self):
        with pytest.raises(ConfigError, match="EVM_PRIVATE_KEY"):
            load()

    def test_networks_and_rpc_urls(self):
        settings = load(
            EVM_PRIVATE_KEY=KEY,
            EVM_NETWORKS="eip155:84532, eip155:11155111",
            EVM_RPC_URL_11155111="https://sepolia.example",
        )

        assert settings.networks == ["eip155:84532", "eip155:11155111"]
        assert settings.rpc_url_for("eip155:11155111") == "https://sepolia.example"
        assert settings.rpc_url_for("eip155:84532") == "https://sepolia.base.org"

    def test_unknown_network_without_rpc_url(self):
        settings = load(EVM_PRIVATE_KEY=KEY, EVM_NETWORKS="eip155:999")

        with pytest.raises(ConfigError, match="EVM_RPC_URL_999"):
            settings.rpc_url_for("eip155:999")

    def test_invalid_network(self):
        with pytest.raises(ConfigError):
            load(EVM_PRIVATE_KEY=KEY, EVM_NETWORKS="solana:mainnet")

    @pytest.mark.parametrize(
        "value,expected",
        [("false", False), ("FALSE", False), ("true", True), ("0", True), ("", True)],
    )
    def test_cross_chain_enabled_only_false_disables(self, value, expected):
        settings = load(EVM_PRIVATE_KEY=KEY, CROSS_CHAIN_ENABLED=value)
        assert settings.cross_chain_enabled is expected

    def test_http_provider_needs_url(self):
        with pytest.raises(ConfigError, match="BRIDGE_API_URL"):
            load(EVM_PRIVATE_KEY=KEY, BRIDGE_PROVIDER="http")

    def test_http_provider(self):
        settings = load(
            EVM_PRIVATE_KEY=KEY,
            BRIDGE_PROVIDER="HTTP",
            BRIDGE_API_URL="https://bridge.example",
            BRIDGE_API_KEY="secret",
        )

        assert settings.bridge_provider == BRIDGE_PROVIDER_HTTP
        assert settings.bridge_api_key == "secret"

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="BRIDGE_PROVIDER"):
            load(EVM_PRIVATE_KEY=KEY, BRIDGE_PROVIDER="wormhole")

    def test_bad_port(self):
        with pytest.raises(ConfigError, match="PORT"):
            load(EVM_PRIVATE_KEY=KEY, PORT="http")

    def test_bridge_settings(self):
        settings = load(
            EVM_PRIVATE_KEY=KEY,
            BRIDGE_LOCK_ADDRESS="0x000000000000000000000000000000000000b10c",
            BRIDGE_DATABASE_URL="sqlite+aiosqlite:///bridge.db",
            PORT="8080",
            LOG_LEVEL="debug",
        )

        assert settings.bridge_lock_address == "0x000000000000000000000000000000000000b10c"
        assert settings.bridge_database_url == "sqlite+aiosqlite:///bridge.db"
        assert settings.port == 8080
        assert settings.log_level == "DEBUG"
