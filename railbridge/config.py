"""Facilitator settings loaded from the environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .mechanisms.evm.constants import NETWORK_CONFIGS
from .mechanisms.evm.utils import get_evm_chain_id

DEFAULT_PORT = 4022
DEFAULT_NETWORKS = ["eip155:84532"]

BRIDGE_PROVIDER_POOL = "pool"
BRIDGE_PROVIDER_HTTP = "http"


class ConfigError(ValueError):
    """Environment configuration is missing or invalid."""


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() != "false"


@dataclass
class FacilitatorSettings:
    """Everything needed to build a facilitator service.

    Attributes:
        evm_private_key: Facilitator account key (pays gas, holds pool liquidity).
        networks: CAIP-2 networks to serve.
        rpc_urls: JSON-RPC URL per network.
        cross_chain_enabled: Bridge cross-chain payments (else pay merchant on source).
        bridge_lock_address: Source-chain address receiving funds to bridge.
        bridge_provider: "pool" (facilitator liquidity) or "http" (external bridge API).
        bridge_api_url: Bridge API root, required for the http provider.
        bridge_api_key: Optional bridge API bearer token.
        bridge_database_url: Async SQLAlchemy URL for the bridge ledger; in-memory when None.
        port: HTTP port.
        log_level: Root logging level.
    """

    evm_private_key: str
    networks: list[str] = field(default_factory=lambda: list(DEFAULT_NETWORKS))
    rpc_urls: dict[str, str] = field(default_factory=dict)
    cross_chain_enabled: bool = True
    bridge_lock_address: str | None = None
    bridge_provider: str = BRIDGE_PROVIDER_POOL
    bridge_api_url: str | None = None
    bridge_api_key: str | None = None
    bridge_database_url: str | None = None
    port: int = DEFAULT_PORT
    log_level: str = "INFO"

    def rpc_url_for(self, network: str) -> str:
        """RPC URL for ``network``: explicit setting, else the known default.

        Raises:
            ConfigError: If the network has neither.
        """
        url = self.rpc_urls.get(network) or NETWORK_CONFIGS.get(network, {}).get("rpc_url")
        if not url:
            raise ConfigError(
                f"No RPC URL for {network}; set EVM_RPC_URL_{get_evm_chain_id(network)}"
            )
        return url

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        load_dotenv_file: bool = True,
    ) -> FacilitatorSettings:
        """Build settings from environment variables.

        Args:
            environ: Variables to read (default: ``os.environ``).
            load_dotenv_file: Load a ``.env`` file into ``os.environ`` first.

        Raises:
            ConfigError: If a required variable is missing or invalid.
        """
        if load_dotenv_file:
            load_dotenv()
        env = os.environ if environ is None else environ

        private_key = env.get("EVM_PRIVATE_KEY")
        if not private_key:
            raise ConfigError("EVM_PRIVATE_KEY is required")

        networks = [n.strip() for n in env.get("EVM_NETWORKS", "").split(",") if n.strip()]
        if not networks:
            networks = list(DEFAULT_NETWORKS)

        rpc_urls: dict[str, str] = {}
        for network in networks:
            try:
                chain_id = get_evm_chain_id(network)
            except ValueError as e:
                raise ConfigError(str(e)) from e
            url = env.get(f"EVM_RPC_URL_{chain_id}")
            if url:
                rpc_urls[network] = url

        bridge_provider = env.get("BRIDGE_PROVIDER", BRIDGE_PROVIDER_POOL).strip().lower()
        if bridge_provider not in (BRIDGE_PROVIDER_POOL, BRIDGE_PROVIDER_HTTP):
            raise ConfigError(f"BRIDGE_PROVIDER must be 'pool' or 'http', got '{bridge_provider}'")
        bridge_api_url = env.get("BRIDGE_API_URL") or None
        if bridge_provider == BRIDGE_PROVIDER_HTTP and not bridge_api_url:
            raise ConfigError("BRIDGE_API_URL is required when BRIDGE_PROVIDER=http")

        try:
            port = int(env.get("PORT", str(DEFAULT_PORT)))
        except ValueError as e:
            raise ConfigError(f"PORT must be an integer, got '{env.get('PORT')}'") from e

        return cls(
            evm_private_key=private_key,
            networks=networks,
            rpc_urls=rpc_urls,
            cross_chain_enabled=_parse_bool(env.get("CROSS_CHAIN_ENABLED"), True),
            bridge_lock_address=env.get("BRIDGE_LOCK_ADDRESS") or None,
            bridge_provider=bridge_provider,
            bridge_api_url=bridge_api_url,
            bridge_api_key=env.get("BRIDGE_API_KEY") or None,
            bridge_database_url=env.get("BRIDGE_DATABASE_URL") or None,
            port=port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
