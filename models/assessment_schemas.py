from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ThreatLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    UNKNOWN = "UNKNOWN"


class AnalysisStage(str, Enum):
    BASIC = "basic"
    ADVANCED = "advanced"


class RiskTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    CONTEXT = "context"


class RiskSpan(BaseModel):
    """
    A highlighted region of the incident text, as [start, end) offsets
    into the original string.
    """
    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    tier: RiskTier

    @model_validator(mode="after")
    def _check_bounds(self) -> "RiskSpan":
        if self.end <= self.start:
            raise ValueError("span end must be greater than start")
        return self


class Assessment(BaseModel):
    """
    Canonical result of one analysis stage.

    Unknown keys (entityExtraction, citations, signalWeights, confidence,
    researchLog, ...) are kept as-is and serialized back untouched.
    """
    model_config = ConfigDict(extra="allow", frozen=True)

    threatLevel: ThreatLevel = Field(...)
    riskScore: int = Field(..., ge=0, le=100)
    incidentType: str = Field(...)
    immediateAction: str = Field(...)
    redFlags: List[str] = Field(default_factory=list)
    researchFindings: List[str] = Field(default_factory=list)
    explanation: str = Field(...)
    nextSteps: List[str] = Field(...)

    @property
    def extended_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    @property
    def is_degraded(self) -> bool:
        return bool((self.model_extra or {}).get("degraded", False))

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class AnalysisRequest(BaseModel):
    """
    What the Analysis Client sends for one stage.
    An advanced request always carries the basic result it refines.
    """
    model_config = ConfigDict(frozen=True)

    incident: str
    stage: AnalysisStage = AnalysisStage.BASIC
    priorResult: Optional[Assessment] = None

    @model_validator(mode="after")
    def _require_prior_for_advanced(self) -> "AnalysisRequest":
        if self.stage == AnalysisStage.ADVANCED and self.priorResult is None:
            raise ValueError("advanced analysis requires the basic assessment as priorResult")
        return self


class AnalyzeRequest(BaseModel):
    """
    Body of POST /analyze. Everything is optional at parse time so the
    endpoint can answer with a 400 instead of a schema error.
    """
    incident: Optional[str] = None
    analysisType: Literal["basic", "advanced"] = "basic"
    basicResults: Optional[dict[str, Any]] = None

    @field_validator("incident", mode="before")
    @classmethod
    def _normalize_incident(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        return str(v)

    @field_validator("analysisType", mode="before")
    @classmethod
    def _normalize_analysis_type(cls, v: object) -> str:
        if v is None:
            return "basic"
        return str(v).strip().lower()
