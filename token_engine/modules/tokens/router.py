"""Tokens API router."""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from token_engine.core.database import get_db
from token_engine.modules.deployment.schemas import DeploymentResponse
from token_engine.modules.tokens.aggregate import TokenAggregate
from token_engine.modules.tokens.batch import summarize
from token_engine.modules.tokens.schemas import (
    BatchItemResponse,
    BatchValidationRequest,
    BatchValidationResponse,
    TemplateCreateRequest,
    TemplateResponse,
    TemplateUseRequest,
    TierClassificationResponse,
    TokenAggregateResponse,
    TokenCloneRequest,
    TokenCreateRequest,
    TokenFormUpdate,
    TokenResponse,
    TransitionEntry,
    TransitionRequest,
    WorkflowResponse,
)
from token_engine.modules.tokens.service import TokenService
from token_engine.modules.tokens.store import SqlRecordStore

router = APIRouter(prefix="/tokens", tags=["tokens"])


def get_token_service(db: AsyncSession = Depends(get_db)) -> TokenService:
    return TokenService(SqlRecordStore(db))


def _aggregate_response(aggregate: TokenAggregate) -> TokenAggregateResponse:
    return TokenAggregateResponse(
        token=TokenResponse.model_validate(aggregate.token),
        form=aggregate.form(),
        deployment=(
            DeploymentResponse.from_record(aggregate.deployment)
            if aggregate.deployment else None
        ),
    )


@router.get("", response_model=list[TokenResponse])
async def list_tokens(
    project_id: uuid.UUID | None = Query(None),
    standard: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    service: TokenService = Depends(get_token_service),
) -> list[TokenResponse]:
    """List tokens, optionally by project, standard and status."""
    tokens = await service.list_tokens(project_id, standard, status_filter)
    return [TokenResponse.model_validate(token) for token in tokens]


@router.post("", response_model=TokenAggregateResponse, status_code=status.HTTP_201_CREATED)
async def create_token(
    body: TokenCreateRequest,
    service: TokenService = Depends(get_token_service),
) -> TokenAggregateResponse:
    """Create a DRAFT token from flat form data."""
    aggregate = await service.create_token(body.project_id, body.form, actor_id=body.actor_id)
    return _aggregate_response(aggregate)


@router.get("/tiers", response_model=TierClassificationResponse)
async def classify_tokens(
    project_id: uuid.UUID = Query(...),
    service: TokenService = Depends(get_token_service),
) -> TierClassificationResponse:
    """Group a project's tokens into primary, secondary and tertiary tiers."""
    result = await service.classify_for_display(project_id)
    return TierClassificationResponse(
        primary=[TokenResponse.model_validate(t) for t in result.primary],
        secondary_by_parent={
            key: [TokenResponse.model_validate(t) for t in tokens]
            for key, tokens in result.secondary_by_parent.items()
        },
        tertiary_by_parent={
            key: [TokenResponse.model_validate(t) for t in tokens]
            for key, tokens in result.tertiary_by_parent.items()
        },
    )


@router.post("/templates", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreateRequest,
    service: TokenService = Depends(get_token_service),
) -> TemplateResponse:
    """Save a reusable standard and default form values for a project."""
    row = await service.create_template(
        body.project_id,
        body.name,
        body.standard,
        blocks=body.blocks,
        metadata=body.metadata,
        description=body.description,
        actor_id=body.actor_id,
    )
    return TemplateResponse.model_validate(row)


@router.get("/templates", response_model=list[TemplateResponse])
async def list_templates(
    project_id: uuid.UUID = Query(...),
    standard: str | None = Query(None),
    service: TokenService = Depends(get_token_service),
) -> list[TemplateResponse]:
    rows = await service.list_templates(project_id, standard)
    return [TemplateResponse.model_validate(row) for row in rows]


@router.post(
    "/templates/{template_id}/tokens",
    response_model=TokenAggregateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_from_template(
    template_id: uuid.UUID,
    body: TemplateUseRequest,
    service: TokenService = Depends(get_token_service),
) -> TokenAggregateResponse:
    """Create a DRAFT token from a template, with overrides on top."""
    aggregate = await service.create_from_template(
        template_id, body.overrides, project_id=body.project_id, actor_id=body.actor_id
    )
    return _aggregate_response(aggregate)


@router.post("/validate-batch", response_model=BatchValidationResponse)
async def validate_batch(
    body: BatchValidationRequest,
    service: TokenService = Depends(get_token_service),
) -> BatchValidationResponse:
    """Validate many token forms at once; nothing is saved."""
    items = await service.validate_batch(body.forms)
    summary = summarize(items)
    return BatchValidationResponse(
        valid=summary.valid,
        total=summary.total,
        valid_count=summary.valid_count,
        invalid_count=summary.invalid_count,
        issues_by_field=summary.issues_by_field,
        items=[
            BatchItemResponse(
                index=item.index,
                name=item.name,
                standard=item.standard,
                valid=item.valid,
                issues=[issue.as_dict() for issue in item.issues],
            )
            for item in items
        ],
    )


@router.get("/{token_id}", response_model=TokenAggregateResponse)
async def get_token(
    token_id: uuid.UUID,
    service: TokenService = Depends(get_token_service),
) -> TokenAggregateResponse:
    """Load a token with its extension, collections and deployment record."""
    return _aggregate_response(await service.load_aggregate(token_id))


@router.patch("/{token_id}", response_model=TokenAggregateResponse)
async def save_token_form(
    token_id: uuid.UUID,
    body: TokenFormUpdate,
    service: TokenService = Depends(get_token_service),
) -> TokenAggregateResponse:
    """Save a full or partial form edit."""
    return _aggregate_response(await service.save_form(token_id, body.form))


@router.delete("/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_token(
    token_id: uuid.UUID,
    service: TokenService = Depends(get_token_service),
) -> Response:
    """Delete a token and everything it owns."""
    await service.delete_token(token_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{token_id}/clone",
    response_model=TokenAggregateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def clone_token(
    token_id: uuid.UUID,
    body: TokenCloneRequest,
    service: TokenService = Depends(get_token_service),
) -> TokenAggregateResponse:
    """Copy a token's configuration into a new DRAFT token."""
    aggregate = await service.clone_token(
        token_id,
        body.overrides,
        project_id=body.project_id,
        include_collections=body.include_collections,
        actor_id=body.actor_id,
    )
    return _aggregate_response(aggregate)


@router.post("/{token_id}/transitions", response_model=TokenResponse)
async def request_transition(
    token_id: uuid.UUID,
    body: TransitionRequest,
    service: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """Move the token along one lifecycle edge."""
    token = await service.request_transition(
        token_id,
        body.observed_status,
        body.target_status,
        notes=body.notes,
        actor_id=body.actor_id,
    )
    return TokenResponse.model_validate(token)


@router.get("/{token_id}/workflow", response_model=WorkflowResponse)
async def get_workflow(
    token_id: uuid.UUID,
    service: TokenService = Depends(get_token_service),
) -> WorkflowResponse:
    """Current status, requestable transitions and transition history."""
    workflow = await service.workflow(token_id)
    return WorkflowResponse(
        token_id=workflow["token_id"],
        status=workflow["status"],
        transition_count=workflow["transition_count"],
        available_transitions=workflow["available_transitions"],
        history=[TransitionEntry.model_validate(entry) for entry in workflow["history"]],
    )
