"""Shared test fixtures for the token engine test suite."""

import os

# Point the app at SQLite before anything imports the engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("APP_ENV", "test")

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from token_engine.core.database import Base, get_db
from token_engine.main import app
from token_engine.models.enums import DeploymentStatus, TokenStandard, TokenStatus
from token_engine.modules.deployment.deployer import DeployerStatus, SubmissionResult, get_deployer
from token_engine.modules.deployment.service import DeploymentOrchestrator
from token_engine.modules.tokens.aggregate import TokenAggregate
from token_engine.modules.tokens.exceptions import DeployerFailure
from token_engine.modules.tokens.registry import REGISTRY, FieldKind
from token_engine.modules.tokens.service import TokenService
from token_engine.modules.tokens.store import SqlRecordStore

SAMPLE_PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
SAMPLE_ACTOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")

ASSET_ADDRESS = "0x" + "a1" * 20
FEE_RECIPIENT = "0x" + "b2" * 20
HOLDER_ADDRESS = "0x" + "c3" * 20
CONTRACT_ADDRESS = "0x" + "d4" * 20
TX_HASH = "0x" + "ef" * 32

# Lifecycle path from DRAFT up to MINTED
PATH_TO_MINTED = (
    TokenStatus.REVIEW,
    TokenStatus.APPROVED,
    TokenStatus.READY_TO_MINT,
    TokenStatus.MINTED,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ── Database ──────────────────────────────────────────────────────────────────


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory SQLite database per test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def store(db: AsyncSession) -> SqlRecordStore:
    return SqlRecordStore(db)


@pytest.fixture
def service(store: SqlRecordStore) -> TokenService:
    return TokenService(store)


# ── Deployer ──────────────────────────────────────────────────────────────────


class FakeDeployer:
    """In-memory deployer recording what it was asked to deploy."""

    def __init__(self) -> None:
        self.submitted: list[dict[str, Any]] = []
        self.fail_with: str | None = None
        self.reject_with: str | None = None
        self.submit_address: str | None = None
        self.reported = DeployerStatus(status=DeploymentStatus.DEPLOYING)

    async def submit(self, config: dict[str, Any]) -> SubmissionResult:
        if self.fail_with:
            raise DeployerFailure(self.fail_with)
        self.submitted.append(config)
        if self.reject_with:
            return SubmissionResult(error=self.reject_with)
        return SubmissionResult(tx_hash=TX_HASH, address=self.submit_address)

    async def status(self, tx_hash: str) -> DeployerStatus:
        return self.reported


@pytest.fixture
def deployer() -> FakeDeployer:
    return FakeDeployer()


@pytest.fixture
def orchestrator(store: SqlRecordStore, deployer: FakeDeployer) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(store, deployer)


# ── API client ────────────────────────────────────────────────────────────────


@pytest.fixture
async def client(db: AsyncSession, deployer: FakeDeployer) -> AsyncGenerator[AsyncClient]:
    async def _get_db() -> AsyncGenerator[AsyncSession]:
        try:
            yield db
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_deployer] = lambda: deployer
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Sample forms ──────────────────────────────────────────────────────────────


def erc20_form(**overrides: Any) -> dict[str, Any]:
    return {
        "standard": "ERC-20",
        "name": "Green Bond Token",
        "symbol": "GBT",
        "decimals": 18,
        "initialSupply": "1000000",
        "cap": "5000000",
        "isMintable": True,
        "feeOnTransfer": {"enabled": True, "fee": "0.5", "recipient": FEE_RECIPIENT},
        **overrides,
    }


def vault_form(**overrides: Any) -> dict[str, Any]:
    """A fee-charging ERC-4626 vault that passes every deployment check."""
    return {
        "standard": "ERC-4626",
        "name": "Solar Yield Vault",
        "symbol": "SYV",
        "decimals": 18,
        "assetAddress": ASSET_ADDRESS,
        "assetName": "USD Coin",
        "assetSymbol": "USDC",
        "assetDecimals": 6,
        "depositFee": "0.5",
        "managementFee": "2",
        "performanceFee": "10",
        "feeRecipient": FEE_RECIPIENT,
        "strategyDefaults": {"targetApy": "7.5", "riskLevel": "low"},
        "strategyParams": [
            {"name": "harvestThreshold", "value": "1000", "paramType": "number"},
        ],
        "assetAllocations": [
            {"asset": "USDC", "percentage": "60", "protocol": "aave", "expectedApy": "4.2"},
            {"asset": "DAI", "percentage": "40", "protocol": "compound", "expectedApy": "3.9"},
        ],
        **overrides,
    }


@pytest.fixture
def mint() -> Callable[[TokenService, TokenAggregate], Awaitable[TokenAggregate]]:
    """Walk a DRAFT token up to MINTED."""

    async def _mint(service: TokenService, aggregate: TokenAggregate) -> TokenAggregate:
        current = aggregate.status
        for target in PATH_TO_MINTED:
            await service.request_transition(aggregate.token.id, current, target)
            current = target
        return await service.load_aggregate(aggregate.token.id)

    return _mint


# ── Declared field cases ──────────────────────────────────────────────────────

# One valid value per field kind, as a form would send it, and what comes back
SAMPLE_VALUES = {
    FieldKind.TEXT: ("Some text", "Some text"),
    FieldKind.INTEGER: (6, 6),
    FieldKind.BOOLEAN: (True, True),
    FieldKind.DECIMAL: ("1500.12345678", "1500.12345678"),
    FieldKind.PERCENT: ("2.50", "2.5"),
    FieldKind.ADDRESS: (HOLDER_ADDRESS, HOLDER_ADDRESS),
    FieldKind.TEXT_LIST: (["US", "EU"], ["US", "EU"]),
    FieldKind.JSON: ({"a": 1}, {"a": 1}),
}

# Enough to satisfy every required extension field of each standard
MINIMAL_FORMS = {
    TokenStandard.ERC20: {"initialSupply": "1000"},
    TokenStandard.ERC721: {"baseUri": "ipfs://base/"},
    TokenStandard.ERC1155: {"baseUri": "ipfs://base/"},
    TokenStandard.ERC1400: {"initialSupply": "1000", "issuingJurisdiction": "DE"},
    TokenStandard.ERC3525: {"valueDecimals": 2, "baseUri": "ipfs://base/"},
    TokenStandard.ERC4626: {
        "assetAddress": ASSET_ADDRESS,
        "assetName": "USD Coin",
        "assetSymbol": "USDC",
    },
}


def declared_field_cases():
    """(standard, key, sent, expected) for every declared extension field."""
    for standard, schema in REGISTRY.items():
        for spec in schema.fields:
            if spec.kind == FieldKind.CHOICE:
                yield standard, spec.key, spec.choices[-1], spec.choices[-1]
            elif spec.kind == FieldKind.NESTED:
                child = spec.children[0]
                sent, expected = (
                    (child.choices[-1], child.choices[-1])
                    if child.kind == FieldKind.CHOICE
                    else SAMPLE_VALUES[child.kind]
                )
                yield standard, spec.key, {child.key: sent}, expected
            elif spec.kind == FieldKind.INTEGER and spec.maximum is not None:
                yield standard, spec.key, spec.maximum, spec.maximum
            else:
                sent, expected = SAMPLE_VALUES[spec.kind]
                yield standard, spec.key, sent, expected
