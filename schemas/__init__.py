"""
DirectorAI Data Models (Pydantic Schemas)
"""

from .models import (
    now_ms,
    new_id,
    AssetType,
    AssetScope,
    AssetStatus,
    ShotStatus,
    GenerationEngine,
    AssetUsageLog,
    Asset,
    AssetReference,
    Shot,
    ScriptSegment,
    ParsingRule,
    ArtStyle,
    Project,
    ProjectMetadata,
    ProjectSettings,
    ConfirmationStatus,
    ConfirmationResult,
)
from .analysis_models import (
    ExtractedEntity,
    ExtractedShot,
    ScriptAnalysis,
    RESPONSE_SCHEMA,
)

__all__ = [
    "now_ms",
    "new_id",
    "AssetType",
    "AssetScope",
    "AssetStatus",
    "ShotStatus",
    "GenerationEngine",
    "AssetUsageLog",
    "Asset",
    "AssetReference",
    "Shot",
    "ScriptSegment",
    "ParsingRule",
    "ArtStyle",
    "Project",
    "ProjectMetadata",
    "ProjectSettings",
    "ConfirmationStatus",
    "ConfirmationResult",
    "ExtractedEntity",
    "ExtractedShot",
    "ScriptAnalysis",
    "RESPONSE_SCHEMA",
]
