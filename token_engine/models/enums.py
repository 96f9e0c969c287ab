"""Enumerations shared by the token models and services."""

import enum


# ── Tokens ────────────────────────────────────────────────────────────────────


class TokenStandard(str, enum.Enum):
    ERC20 = "ERC-20"
    ERC721 = "ERC-721"
    ERC1155 = "ERC-1155"
    ERC1400 = "ERC-1400"
    ERC3525 = "ERC-3525"
    ERC4626 = "ERC-4626"


class TokenStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    REVIEW = "REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    READY_TO_MINT = "READY_TO_MINT"
    MINTED = "MINTED"
    DEPLOYED = "DEPLOYED"
    PAUSED = "PAUSED"
    DISTRIBUTED = "DISTRIBUTED"


class TokenTier(str, enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


class ConfigMode(str, enum.Enum):
    MIN = "min"
    MAX = "max"


# ── Deployment ────────────────────────────────────────────────────────────────


class DeploymentStatus(str, enum.Enum):
    PENDING = "pending"
    DEPLOYING = "deploying"
    SUCCESS = "success"
    FAILED = "failed"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"


class NetworkEnvironment(str, enum.Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


class FindingSeverity(str, enum.Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
