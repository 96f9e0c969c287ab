"""Token lifecycle state machine.

DRAFT -> REVIEW -> APPROVED -> READY_TO_MINT -> MINTED -> DEPLOYED, with
rejection from REVIEW or APPROVED, and PAUSED / DISTRIBUTED after deployment.
The MINTED -> DEPLOYED edge belongs to the deployment orchestrator; callers
asking for it directly are refused.
"""

from __future__ import annotations

from typing import Any

from token_engine.models.enums import TokenStatus
from token_engine.modules.tokens.exceptions import InvalidTransition, UnknownStatus

S = TokenStatus

TRANSITIONS: dict[TokenStatus, frozenset[TokenStatus]] = {
    S.DRAFT: frozenset({S.REVIEW}),
    S.REVIEW: frozenset({S.APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.READY_TO_MINT, S.REJECTED}),
    S.REJECTED: frozenset(),
    S.READY_TO_MINT: frozenset({S.MINTED}),
    S.MINTED: frozenset({S.DEPLOYED}),
    S.DEPLOYED: frozenset({S.PAUSED, S.DISTRIBUTED}),
    S.PAUSED: frozenset({S.DEPLOYED}),
    S.DISTRIBUTED: frozenset(),
}

INITIAL_STATUS = S.DRAFT
TERMINAL_STATUSES = frozenset({S.REJECTED})
DEPLOYMENT_EDGE = (S.MINTED, S.DEPLOYED)

# Once on chain the stored configuration must match what was deployed
ON_CHAIN_STATUSES = frozenset({S.DEPLOYED, S.PAUSED, S.DISTRIBUTED})

_STORAGE_FORMS = {
    S.REVIEW: "UNDER REVIEW",
    S.READY_TO_MINT: "READY TO MINT",
}
_ALIASES = {
    "UNDER_REVIEW": S.REVIEW,
}


def parse_status(raw: Any) -> TokenStatus:
    """Parse a stored or submitted status, raising UnknownStatus on garbage.

    Case-insensitive; spaces and hyphens count as underscores, so both
    "UNDER REVIEW" and "ready-to-mint" parse. Never falls back to DRAFT.
    """
    if isinstance(raw, TokenStatus):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise UnknownStatus(raw)
    key = "_".join(raw.strip().upper().replace("-", " ").split())
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return TokenStatus(key)
    except ValueError:
        raise UnknownStatus(raw) from None


def storage_status(status: TokenStatus) -> str:
    return _STORAGE_FORMS.get(status, status.value)


def is_allowed(current: TokenStatus, target: TokenStatus) -> bool:
    return target in TRANSITIONS[current]


def check_transition(
    current: TokenStatus, target: TokenStatus, *, via_deployment: bool = False
) -> None:
    if not is_allowed(current, target):
        raise InvalidTransition(current, target)
    if (current, target) == DEPLOYMENT_EDGE and not via_deployment:
        raise InvalidTransition(
            current, target, "tokens reach DEPLOYED through a successful deployment"
        )


def available_transitions(status: TokenStatus) -> list[TokenStatus]:
    """Edges a caller may request from ``status``, in declaration order."""
    return [
        target for target in TokenStatus
        if is_allowed(status, target) and (status, target) != DEPLOYMENT_EDGE
    ]
