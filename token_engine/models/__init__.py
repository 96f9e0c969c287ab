"""SQLAlchemy models package; importing it registers all models on Base.metadata."""

from token_engine.models.base import BaseModel, ModelMixin, SubResourceModel, TimestampedModel
from token_engine.models.enums import (
    ConfigMode,
    DeploymentStatus,
    FindingSeverity,
    NetworkEnvironment,
    TokenStandard,
    TokenStatus,
    TokenTier,
)
from token_engine.models.extensions import (
    ERC20Properties,
    ERC721Properties,
    ERC1155Properties,
    ERC1400Properties,
    ERC3525Properties,
    ERC4626Properties,
    TokenExtension,
)
from token_engine.models.sub_resources import (
    ERC721Attribute,
    ERC1155Balance,
    ERC1155Type,
    ERC1155UriMapping,
    ERC1400Controller,
    ERC1400Document,
    ERC1400Partition,
    ERC3525Allocation,
    ERC3525Slot,
    ERC4626AssetAllocation,
    ERC4626StrategyParam,
    TokenSubResource,
)
from token_engine.models.tokens import Token, TokenDeployment, TokenStatusTransition, TokenTemplate

__all__ = [
    # Base
    "BaseModel",
    "ModelMixin",
    "SubResourceModel",
    "TimestampedModel",
    # Enums
    "ConfigMode",
    "DeploymentStatus",
    "FindingSeverity",
    "NetworkEnvironment",
    "TokenStandard",
    "TokenStatus",
    "TokenTier",
    # Tokens
    "Token",
    "TokenDeployment",
    "TokenStatusTransition",
    "TokenTemplate",
    # Extensions
    "TokenExtension",
    "ERC20Properties",
    "ERC721Properties",
    "ERC1155Properties",
    "ERC1400Properties",
    "ERC3525Properties",
    "ERC4626Properties",
    # Sub-resources
    "TokenSubResource",
    "ERC721Attribute",
    "ERC1155Type",
    "ERC1155Balance",
    "ERC1155UriMapping",
    "ERC1400Partition",
    "ERC1400Controller",
    "ERC1400Document",
    "ERC3525Slot",
    "ERC3525Allocation",
    "ERC4626StrategyParam",
    "ERC4626AssetAllocation",
]
