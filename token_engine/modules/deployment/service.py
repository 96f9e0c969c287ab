"""Deployment orchestrator: gate, submit, track, and promote to DEPLOYED."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any, assert_never

import structlog

from token_engine.core.config import settings
from token_engine.models.base import utcnow
from token_engine.models.enums import DeploymentStatus, NetworkEnvironment, TokenStandard, TokenStatus
from token_engine.modules.deployment import gate
from token_engine.modules.deployment.deployer import Deployer, explorer_url
from token_engine.modules.tokens.aggregate import DeploymentRecord, TokenAggregate
from token_engine.modules.tokens.exceptions import (
    DeployerFailure,
    DeploymentBlocked,
    DeploymentInProgress,
    DeploymentNotFound,
    InvalidTransition,
    StaleDeploymentReport,
)
from token_engine.modules.tokens.loader import DEPLOYMENTS
from token_engine.modules.tokens.service import TokenService
from token_engine.modules.tokens.store import RecordStore
from token_engine.modules.tokens.validators import InvalidValue, check_address

logger = structlog.get_logger()

IN_FLIGHT = frozenset({DeploymentStatus.PENDING, DeploymentStatus.DEPLOYING, DeploymentStatus.VERIFYING})

# Every status past "success" still means the contract exists on chain
SUCCEEDED = frozenset({
    DeploymentStatus.SUCCESS,
    DeploymentStatus.VERIFYING,
    DeploymentStatus.VERIFIED,
    DeploymentStatus.VERIFICATION_FAILED,
})

# A report may only move a succeeded deployment forward along this order
_SUCCESS_ORDER = {
    DeploymentStatus.SUCCESS: 0,
    DeploymentStatus.VERIFYING: 1,
    DeploymentStatus.VERIFIED: 2,
    DeploymentStatus.VERIFICATION_FAILED: 2,
}


def _contract_address(value: str | None) -> str | None:
    try:
        return check_address(value)
    except InvalidValue:
        raise DeployerFailure(f"Deployer reported an invalid contract address {value!r}") from None


def prepare_config(
    aggregate: TokenAggregate, network: str, environment: NetworkEnvironment
) -> dict[str, Any]:
    """The configuration handed to the deployer."""
    form = aggregate.form()
    token = aggregate.token
    match aggregate.standard:
        case TokenStandard.ERC20:
            args = [token.name, token.symbol, token.decimals, form["initialSupply"], form["cap"]]
        case TokenStandard.ERC721:
            args = [token.name, token.symbol, form["baseUri"]]
        case TokenStandard.ERC1155:
            args = [form["baseUri"]]
        case TokenStandard.ERC1400:
            controllers = [row["address"] for row in form["controllers"]]
            if form["controllerAddress"] and form["controllerAddress"] not in controllers:
                controllers.insert(0, form["controllerAddress"])
            partitions = [row["partitionId"] for row in form["partitions"]]
            args = [token.name, token.symbol, token.decimals, controllers, partitions]
        case TokenStandard.ERC3525:
            args = [token.name, token.symbol, form["valueDecimals"]]
        case TokenStandard.ERC4626:
            args = [form["assetAddress"], token.name, token.symbol]
        case _:
            assert_never(aggregate.standard)

    return {
        "tokenId": str(token.id),
        "standard": aggregate.standard.value,
        "network": network,
        "environment": environment.value,
        "name": token.name,
        "symbol": token.symbol,
        "decimals": token.decimals,
        "constructorArgs": args,
        "configuration": form,
    }


class DeploymentOrchestrator:
    def __init__(self, store: RecordStore, deployer: Deployer) -> None:
        self.store = store
        self.deployer = deployer
        self.tokens = TokenService(store)

    async def validate_for_deployment(self, token_id: uuid.UUID) -> gate.SecurityValidationResult:
        aggregate = await self.tokens.load_aggregate(token_id)
        return gate.validate(aggregate)

    async def get_deployment(self, token_id: uuid.UUID) -> DeploymentRecord:
        aggregate = await self.tokens.load_aggregate(token_id)
        if aggregate.deployment is None:
            raise DeploymentNotFound(token_id)
        return aggregate.deployment

    async def deploy(
        self,
        token_id: uuid.UUID,
        *,
        network: str | None = None,
        environment: NetworkEnvironment | str | None = None,
        override_validation: bool = False,
        actor_id: uuid.UUID | None = None,
    ) -> DeploymentRecord:
        """Validate and hand the token to the deployer.

        The token stays MINTED here; it moves to DEPLOYED only when the
        deployer reports success through ``record_status`` or ``poll``.
        """
        aggregate = await self.tokens.load_aggregate(token_id)
        if aggregate.status != TokenStatus.MINTED:
            raise InvalidTransition(
                aggregate.status, TokenStatus.DEPLOYED, "only MINTED tokens can be deployed"
            )

        existing = aggregate.deployment
        if existing is not None and existing.status in IN_FLIGHT:
            raise DeploymentInProgress(token_id, existing.status.value)

        result = gate.validate(aggregate)
        if result.has_issues and not override_validation:
            logger.warning(
                "deployment.blocked",
                token_id=str(token_id),
                findings=len(result.blocking),
            )
            raise DeploymentBlocked(list(result.findings))
        if result.has_issues:
            logger.warning(
                "deployment.validation_overridden",
                token_id=str(token_id),
                actor_id=str(actor_id) if actor_id else None,
                findings=len(result.blocking),
            )

        network = (network or settings.DEFAULT_NETWORK).lower()
        environment = NetworkEnvironment(environment or settings.DEFAULT_ENVIRONMENT)
        config = prepare_config(aggregate, network, environment)

        values: dict[str, Any] = {
            "network": network,
            "environment": environment.value,
            "status": DeploymentStatus.PENDING.value,
            "contract_address": None,
            "transaction_hash": None,
            "error_message": None,
            "override_validation": override_validation,
            "findings": [finding.as_dict() for finding in result.findings],
            "config": config,
            "deployed_by": actor_id,
        }
        if existing is None:
            row = await self.store.insert(DEPLOYMENTS, {**values, "token_id": token_id, "attempts": 1})
            deployment_id = row["id"]
        else:
            deployment_id = existing.id
            await self.store.update(DEPLOYMENTS, deployment_id, {**values, "attempts": existing.attempts + 1})

        try:
            submission = await self.deployer.submit(config)
        except DeployerFailure as exc:
            await self._record_failure(token_id, deployment_id, str(exc))
            raise

        if submission.error or not submission.tx_hash:
            message = submission.error or "Deployer returned no transaction hash"
            await self._record_failure(token_id, deployment_id, message)
            raise DeployerFailure(message)
        try:
            submitted_address = _contract_address(submission.address)
        except DeployerFailure as exc:
            await self._record_failure(token_id, deployment_id, str(exc))
            raise

        await self.store.update(
            DEPLOYMENTS,
            deployment_id,
            {
                "status": DeploymentStatus.DEPLOYING.value,
                "transaction_hash": submission.tx_hash,
                "contract_address": submitted_address,
            },
        )
        logger.info(
            "deployment.submitted",
            token_id=str(token_id),
            network=network,
            environment=environment.value,
            tx_hash=submission.tx_hash,
        )
        return await self.get_deployment(token_id)

    async def _record_failure(self, token_id: uuid.UUID, deployment_id: uuid.UUID, message: str) -> None:
        await self.store.update(
            DEPLOYMENTS,
            deployment_id,
            {"status": DeploymentStatus.FAILED.value, "error_message": message},
        )
        # Keep the failed record even though the request itself errors out
        await self.store.commit()
        logger.error("deployment.failed", token_id=str(token_id), error=message)

    async def record_status(
        self,
        token_id: uuid.UUID,
        status: DeploymentStatus | str,
        *,
        address: str | None = None,
        tx_hash: str | None = None,
        error: str | None = None,
    ) -> DeploymentRecord:
        """Apply a status report from the deployer (push or poll).

        Reports must move the record forward: nothing follows a failure, and
        once the contract exists only later verification states are accepted.
        """
        status = DeploymentStatus(status)
        address = _contract_address(address)
        aggregate = await self.tokens.load_aggregate(token_id)
        deployment = aggregate.deployment
        if deployment is None:
            raise DeploymentNotFound(token_id)
        _check_report_order(token_id, deployment.status, status)

        values: dict[str, Any] = {"status": status.value}
        if tx_hash:
            values["transaction_hash"] = tx_hash
        if address:
            values["contract_address"] = address
        if error:
            values["error_message"] = error

        if status in SUCCEEDED:
            contract_address = address or deployment.contract_address
            if not contract_address:
                raise DeployerFailure("Deployer reported success without a contract address")
            if deployment.deployed_at is None:
                values["deployed_at"] = utcnow()
            await self.store.update(DEPLOYMENTS, deployment.id, values)
            if aggregate.status == TokenStatus.MINTED:
                await self._promote(aggregate, deployment, contract_address, tx_hash)
        else:
            await self.store.update(DEPLOYMENTS, deployment.id, values)

        logger.info("deployment.status_recorded", token_id=str(token_id), status=status.value)
        return await self.get_deployment(token_id)

    async def _promote(
        self,
        aggregate: TokenAggregate,
        deployment: DeploymentRecord,
        contract_address: str,
        tx_hash: str | None,
    ) -> None:
        metadata: Mapping[str, Any] = {
            "address": contract_address,
            "blockchain": deployment.network,
            "network": deployment.environment,
            "deployedAt": utcnow().isoformat(),
            "transactionHash": tx_hash or deployment.transaction_hash,
        }
        explorer = explorer_url(deployment.network, deployment.environment, contract_address)
        if explorer:
            metadata = {**metadata, "explorerUrl": explorer}
        await self.tokens.apply_transition(
            aggregate.token.id,
            TokenStatus.MINTED,
            TokenStatus.DEPLOYED,
            notes=f"Deployed to {deployment.network} ({deployment.environment})",
            actor_id=deployment.deployed_by,
            via_deployment=True,
            metadata=metadata,
        )

    async def poll(self, token_id: uuid.UUID) -> DeploymentRecord:
        deployment = await self.get_deployment(token_id)
        if not deployment.transaction_hash:
            raise DeploymentNotFound(token_id)
        reported = await self.deployer.status(deployment.transaction_hash)
        return await self.record_status(
            token_id,
            reported.status,
            address=reported.address,
            tx_hash=reported.tx_hash,
            error=reported.error,
        )


def _check_report_order(
    token_id: uuid.UUID, current: DeploymentStatus, reported: DeploymentStatus
) -> None:
    if current == DeploymentStatus.FAILED and reported != DeploymentStatus.FAILED:
        raise StaleDeploymentReport(token_id, current.value, reported.value)
    if current in SUCCEEDED and (
        reported not in SUCCEEDED or _SUCCESS_ORDER[reported] < _SUCCESS_ORDER[current]
    ):
        raise StaleDeploymentReport(token_id, current.value, reported.value)
