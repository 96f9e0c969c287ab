"""Token schemas: request bodies and responses for the tokens API."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from token_engine.models.enums import TokenStandard, TokenStatus, TokenTier
from token_engine.modules.deployment.schemas import DeploymentResponse


class TokenCreateRequest(BaseModel):
    project_id: uuid.UUID
    # Flat form data: "standard", core fields, extension fields, collections
    form: dict[str, Any]
    actor_id: uuid.UUID | None = None


class TokenFormUpdate(BaseModel):
    form: dict[str, Any]


class TokenCloneRequest(BaseModel):
    overrides: dict[str, Any] = Field(default_factory=dict)
    project_id: uuid.UUID | None = None
    include_collections: bool = True
    actor_id: uuid.UUID | None = None


class TransitionRequest(BaseModel):
    observed_status: str
    target_status: str
    notes: str | None = None
    actor_id: uuid.UUID | None = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    symbol: str
    decimals: int
    standard: TokenStandard
    status: TokenStatus
    transition_count: int
    description: str | None
    metadata: dict[str, Any]
    config_mode: str
    parent_token_id: uuid.UUID | None
    tier: TokenTier | None
    created_at: datetime | None
    updated_at: datetime | None


class TokenAggregateResponse(BaseModel):
    token: TokenResponse
    form: dict[str, Any]
    deployment: DeploymentResponse | None = None


class TransitionEntry(BaseModel):
    from_status: TokenStatus
    to_status: TokenStatus
    notes: str | None = None
    actor_id: uuid.UUID | None = None
    created_at: datetime


class WorkflowResponse(BaseModel):
    token_id: uuid.UUID
    status: TokenStatus
    transition_count: int
    available_transitions: list[TokenStatus]
    history: list[TransitionEntry]


class TierClassificationResponse(BaseModel):
    primary: list[TokenResponse]
    secondary_by_parent: dict[str, list[TokenResponse]]
    tertiary_by_parent: dict[str, list[TokenResponse]]


class TemplateCreateRequest(BaseModel):
    project_id: uuid.UUID
    name: str
    standard: str
    description: str | None = None
    # Partial flat form, same keys as a token form
    blocks: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    actor_id: uuid.UUID | None = None


class TemplateResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    name: str
    description: str | None
    standard: TokenStandard
    blocks: dict[str, Any]
    metadata: dict[str, Any] = Field(validation_alias=AliasChoices("template_metadata", "metadata"))
    created_at: datetime | None
    updated_at: datetime | None


class TemplateUseRequest(BaseModel):
    overrides: dict[str, Any] = Field(default_factory=dict)
    project_id: uuid.UUID | None = None
    actor_id: uuid.UUID | None = None


MAX_BATCH_SIZE = 50


class BatchValidationRequest(BaseModel):
    forms: list[dict[str, Any]] = Field(min_length=1, max_length=MAX_BATCH_SIZE)


class BatchItemResponse(BaseModel):
    index: int
    name: str
    standard: TokenStandard | None
    valid: bool
    issues: list[dict[str, Any]]


class BatchValidationResponse(BaseModel):
    valid: bool
    total: int
    valid_count: int
    invalid_count: int
    issues_by_field: dict[str, int]
    items: list[BatchItemResponse]
