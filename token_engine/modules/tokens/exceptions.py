"""Error kinds raised by the token engine.

Lookup failures derive from ``LookupError`` and bad input from ``ValueError``
so callers that only care about the broad category can keep catching those.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from token_engine.modules.deployment.gate import Finding


class TokenEngineError(Exception):
    """Base class for every error the engine raises on purpose."""

    code = "token_engine_error"

    def to_detail(self) -> Any:
        return None


class TokenNotFound(TokenEngineError, LookupError):
    code = "token_not_found"

    def __init__(self, token_id: uuid.UUID | str) -> None:
        self.token_id = token_id
        super().__init__(f"Token {token_id} not found")


class TemplateNotFound(TokenNotFound):
    code = "template_not_found"

    def __init__(self, template_id: uuid.UUID | str) -> None:
        self.token_id = None
        self.template_id = template_id
        LookupError.__init__(self, f"Token template {template_id} not found")


class UnknownStandard(TokenEngineError, ValueError):
    code = "unknown_standard"

    def __init__(self, raw: Any) -> None:
        self.raw = raw
        super().__init__(f"Unknown token standard: {raw!r}")


class UnknownStatus(TokenEngineError, ValueError):
    code = "unknown_status"

    def __init__(self, raw: Any) -> None:
        self.raw = raw
        super().__init__(f"Unknown token status: {raw!r}")


# ── Field errors ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FieldIssue:
    field: str
    message: str
    missing: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message}


class FieldErrors(TokenEngineError, ValueError):
    """Collected field-level problems for one mapping or save call."""

    code = "field_errors"
    summary = "Invalid fields"

    def __init__(self, issues: list[FieldIssue]) -> None:
        self.issues = list(issues)
        fields = ", ".join(issue.field for issue in self.issues)
        super().__init__(f"{self.summary}: {fields}")

    @property
    def fields(self) -> list[str]:
        return [issue.field for issue in self.issues]

    def to_detail(self) -> Any:
        return [issue.as_dict() for issue in self.issues]


class FieldMappingIncomplete(FieldErrors):
    code = "field_mapping_incomplete"
    summary = "Required fields missing"


class ValidationFailed(FieldErrors):
    code = "validation_failed"
    summary = "Validation failed"


def raise_for_issues(issues: list[FieldIssue]) -> None:
    """Raise the right error kind for a collected issue list, if any."""
    if not issues:
        return
    if any(not issue.missing for issue in issues):
        raise ValidationFailed(issues)
    raise FieldMappingIncomplete(issues)


# ── Lifecycle ─────────────────────────────────────────────────────────────────


class InvalidTransition(TokenEngineError, ValueError):
    code = "invalid_transition"

    def __init__(self, current: Any, requested: Any, reason: str | None = None) -> None:
        self.current = current
        self.requested = requested
        self.reason = reason
        message = f"Cannot transition from {_label(current)} to {_label(requested)}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)

    def to_detail(self) -> Any:
        return {"current": _label(self.current), "requested": _label(self.requested)}


class ConcurrentModification(TokenEngineError):
    code = "concurrent_modification"

    def __init__(self, token_id: uuid.UUID, observed: Any, actual: Any = None) -> None:
        self.token_id = token_id
        self.observed = observed
        self.actual = actual
        super().__init__(
            f"Token {token_id} changed since it was read "
            f"(observed {_label(observed)}, now {_label(actual) if actual else 'unknown'})"
        )


class TokenNotEditable(TokenEngineError, ValueError):
    code = "token_not_editable"

    def __init__(self, token_id: uuid.UUID, status: Any) -> None:
        self.token_id = token_id
        self.status = status
        super().__init__(f"Token {token_id} is {_label(status)} and can no longer be edited")


class AggregateIntegrityError(TokenEngineError):
    """Stored rows violate the one-token-one-extension shape."""

    code = "aggregate_integrity_error"


# ── Deployment ────────────────────────────────────────────────────────────────


class DeploymentNotFound(TokenNotFound):
    code = "deployment_not_found"

    def __init__(self, token_id: uuid.UUID | str) -> None:
        self.token_id = token_id
        LookupError.__init__(self, f"Token {token_id} has no deployment record")


class DeploymentBlocked(TokenEngineError):
    code = "deployment_blocked"

    def __init__(self, findings: list[Finding]) -> None:
        self.findings = list(findings)
        super().__init__(f"Deployment blocked by {len(self.findings)} finding(s)")

    def to_detail(self) -> Any:
        return [finding.as_dict() for finding in self.findings]


class DeploymentInProgress(ConcurrentModification):
    code = "deployment_in_progress"

    def __init__(self, token_id: uuid.UUID, deployment_status: str) -> None:
        self.token_id = token_id
        self.observed = None
        self.actual = None
        self.deployment_status = deployment_status
        TokenEngineError.__init__(
            self, f"Token {token_id} already has a deployment in progress ({deployment_status})"
        )


class StaleDeploymentReport(ConcurrentModification):
    code = "stale_deployment_report"

    def __init__(self, token_id: uuid.UUID, current: str, reported: str) -> None:
        self.token_id = token_id
        self.observed = None
        self.actual = None
        self.current = current
        self.reported = reported
        TokenEngineError.__init__(
            self, f"Deployment of token {token_id} is {current}; a {reported} report cannot follow it"
        )

    def to_detail(self) -> Any:
        return {"current": self.current, "reported": self.reported}


class DeployerFailure(TokenEngineError):
    code = "deployer_failure"

    def __init__(self, message: str) -> None:
        super().__init__(message)


def _label(value: Any) -> str:
    return getattr(value, "value", None) or str(value)
