"""Deployer: the opaque service that puts a prepared token on chain."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog

from token_engine.core.config import settings
from token_engine.models.enums import DeploymentStatus, NetworkEnvironment
from token_engine.modules.tokens.exceptions import DeployerFailure

logger = structlog.get_logger()


@dataclass(frozen=True)
class SubmissionResult:
    address: str | None = None
    tx_hash: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class DeployerStatus:
    status: DeploymentStatus
    address: str | None = None
    tx_hash: str | None = None
    error: str | None = None


class Deployer(Protocol):
    async def submit(self, config: dict[str, Any]) -> SubmissionResult: ...

    async def status(self, tx_hash: str) -> DeployerStatus: ...


class HttpDeployer:
    """Talks to the deployment service over HTTP.

    Timeouts and transport or HTTP errors surface as DeployerFailure.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
                return resp.json()
        except httpx.TimeoutException as exc:
            logger.warning("deployer.timeout", path=path, error=str(exc))
            raise DeployerFailure(f"Deployer timed out after {self.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning("deployer.http_error", path=path, status=exc.response.status_code)
            raise DeployerFailure(
                f"Deployer returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("deployer.request_failed", path=path, error=str(exc))
            raise DeployerFailure(f"Deployer request failed: {exc}") from exc

    async def submit(self, config: dict[str, Any]) -> SubmissionResult:
        data = await self._request("POST", "/deployments", json=config)
        return SubmissionResult(
            address=data.get("contractAddress"),
            tx_hash=data.get("transactionHash"),
            error=data.get("error"),
        )

    async def status(self, tx_hash: str) -> DeployerStatus:
        data = await self._request("GET", f"/deployments/{tx_hash}")
        try:
            status = DeploymentStatus(data.get("status"))
        except ValueError:
            raise DeployerFailure(f"Deployer reported unknown status {data.get('status')!r}") from None
        return DeployerStatus(
            status=status,
            address=data.get("contractAddress"),
            tx_hash=data.get("transactionHash", tx_hash),
            error=data.get("error"),
        )


def get_deployer() -> Deployer:
    """FastAPI dependency; tests override it with an in-memory deployer."""
    return HttpDeployer(
        settings.DEPLOYER_URL,
        api_key=settings.DEPLOYER_API_KEY,
        timeout=settings.DEPLOYER_TIMEOUT_SECONDS,
    )


# ── Block explorers ───────────────────────────────────────────────────────────

EXPLORERS: dict[str, dict[NetworkEnvironment, str]] = {
    "ethereum": {
        NetworkEnvironment.MAINNET: "https://etherscan.io",
        NetworkEnvironment.TESTNET: "https://sepolia.etherscan.io",
    },
    "polygon": {
        NetworkEnvironment.MAINNET: "https://polygonscan.com",
        NetworkEnvironment.TESTNET: "https://amoy.polygonscan.com",
    },
    "optimism": {
        NetworkEnvironment.MAINNET: "https://optimistic.etherscan.io",
        NetworkEnvironment.TESTNET: "https://sepolia-optimism.etherscan.io",
    },
    "arbitrum": {
        NetworkEnvironment.MAINNET: "https://arbiscan.io",
        NetworkEnvironment.TESTNET: "https://sepolia.arbiscan.io",
    },
    "base": {
        NetworkEnvironment.MAINNET: "https://basescan.org",
        NetworkEnvironment.TESTNET: "https://sepolia.basescan.org",
    },
    "avalanche": {
        NetworkEnvironment.MAINNET: "https://snowtrace.io",
        NetworkEnvironment.TESTNET: "https://testnet.snowtrace.io",
    },
}


def explorer_url(network: str, environment: str, address: str | None) -> str | None:
    """Block explorer link for a deployed contract, if the network is known."""
    if not address:
        return None
    try:
        base = EXPLORERS[network.lower()][NetworkEnvironment(environment)]
    except (KeyError, ValueError):
        return None
    return f"{base}/address/{address}"
