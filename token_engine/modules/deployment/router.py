"""Deployment API router."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from token_engine.core.database import get_db
from token_engine.modules.deployment.deployer import Deployer, get_deployer
from token_engine.modules.deployment.schemas import (
    DeploymentResponse,
    DeploymentStatusReport,
    DeployRequest,
    FindingResponse,
    ValidationResponse,
)
from token_engine.modules.deployment.service import DeploymentOrchestrator
from token_engine.modules.tokens.store import SqlRecordStore

router = APIRouter(prefix="/tokens/{token_id}/deployment", tags=["deployment"])


def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    deployer: Deployer = Depends(get_deployer),
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(SqlRecordStore(db), deployer)


@router.post("/validate", response_model=ValidationResponse)
async def validate_for_deployment(
    token_id: uuid.UUID,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> ValidationResponse:
    """Run the security validation for a MINTED token without deploying it."""
    result = await orchestrator.validate_for_deployment(token_id)
    return ValidationResponse(
        has_issues=result.has_issues,
        findings=[FindingResponse(**finding.as_dict()) for finding in result.findings],
    )


@router.post("", response_model=DeploymentResponse, status_code=status.HTTP_202_ACCEPTED)
async def deploy_token(
    token_id: uuid.UUID,
    body: DeployRequest,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> DeploymentResponse:
    """Submit a MINTED token to the deployer."""
    record = await orchestrator.deploy(
        token_id,
        network=body.network,
        environment=body.environment,
        override_validation=body.override_validation,
        actor_id=body.actor_id,
    )
    return DeploymentResponse.from_record(record)


@router.get("", response_model=DeploymentResponse)
async def get_deployment(
    token_id: uuid.UUID,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> DeploymentResponse:
    """Current deployment record of a token."""
    return DeploymentResponse.from_record(await orchestrator.get_deployment(token_id))


@router.post("/status", response_model=DeploymentResponse)
async def report_deployment_status(
    token_id: uuid.UUID,
    body: DeploymentStatusReport,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> DeploymentResponse:
    """Status notification pushed by the deployer."""
    record = await orchestrator.record_status(
        token_id,
        body.status,
        address=body.contract_address,
        tx_hash=body.transaction_hash,
        error=body.error,
    )
    return DeploymentResponse.from_record(record)


@router.post("/poll", response_model=DeploymentResponse)
async def poll_deployment(
    token_id: uuid.UUID,
    orchestrator: DeploymentOrchestrator = Depends(get_orchestrator),
) -> DeploymentResponse:
    """Ask the deployer for the current status and apply it."""
    return DeploymentResponse.from_record(await orchestrator.poll(token_id))
