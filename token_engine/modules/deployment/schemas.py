"""Deployment schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from token_engine.models.enums import DeploymentStatus, FindingSeverity, NetworkEnvironment
from token_engine.modules.deployment.deployer import explorer_url
from token_engine.modules.tokens.aggregate import DeploymentRecord


class DeployRequest(BaseModel):
    network: str | None = None             # ethereum, polygon, optimism, arbitrum, base, avalanche
    environment: NetworkEnvironment | None = None
    override_validation: bool = False
    actor_id: uuid.UUID | None = None


class DeploymentStatusReport(BaseModel):
    status: DeploymentStatus
    contract_address: str | None = None
    transaction_hash: str | None = None
    error: str | None = None


class FindingResponse(BaseModel):
    severity: FindingSeverity
    message: str
    field: str | None = None


class ValidationResponse(BaseModel):
    has_issues: bool
    findings: list[FindingResponse]


class DeploymentResponse(BaseModel):
    id: uuid.UUID
    token_id: uuid.UUID
    network: str
    environment: str
    status: DeploymentStatus
    contract_address: str | None
    transaction_hash: str | None
    error_message: str | None
    attempts: int
    override_validation: bool
    findings: list[dict[str, Any]]
    explorer_url: str | None = None
    deployed_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_record(cls, record: DeploymentRecord) -> "DeploymentResponse":
        return cls(
            id=record.id,
            token_id=record.token_id,
            network=record.network,
            environment=record.environment,
            status=record.status,
            contract_address=record.contract_address,
            transaction_hash=record.transaction_hash,
            error_message=record.error_message,
            attempts=record.attempts,
            override_validation=record.override_validation,
            findings=[dict(finding) for finding in record.findings],
            explorer_url=explorer_url(record.network, record.environment, record.contract_address),
            deployed_at=record.deployed_at,
            updated_at=record.updated_at,
        )
