"""
Per-incident pipeline state machine.

    IDLE -> RUNNING_BASIC -> AWAITING_UPGRADE -> RUNNING_ADVANCED -> COMPLETE
                  |                                   |
                  +-------------> ERRORED <-----------+

Every dispatched request carries the generation it was issued under. A reset
bumps the generation, so responses that arrive afterwards are discarded.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import logging

from config.settings import settings
from detection.pattern_classifier import classify
from models.assessment_schemas import AnalysisRequest, AnalysisStage, Assessment, RiskSpan
from reasoning.llm_client import AnalysisClient, ProviderError, RawProviderResponse
from reasoning.normalizer import normalize
from reporting.report_generator import ReportMeta, generate_report, make_report_id

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    IDLE = "idle"
    RUNNING_BASIC = "running_basic"
    AWAITING_UPGRADE = "awaiting_upgrade"
    RUNNING_ADVANCED = "running_advanced"
    COMPLETE = "complete"
    ERRORED = "errored"


_RUNNING = (PipelineStage.RUNNING_BASIC, PipelineStage.RUNNING_ADVANCED)


class PipelineTransitionError(RuntimeError):
    """Raised when an action is not allowed in the current stage."""


@dataclass
class PipelineState:
    stage: PipelineStage = PipelineStage.IDLE
    incident: str = ""
    highlights: list[RiskSpan] = field(default_factory=list)
    basic: Assessment | None = None
    advanced: Assessment | None = None
    error: str | None = None
    error_status: int | None = None
    generation: int = 0

    @property
    def upgrade_offered(self) -> bool:
        return self.stage == PipelineStage.AWAITING_UPGRADE

    @property
    def busy(self) -> bool:
        return self.stage in _RUNNING

    @property
    def assessment(self) -> Assessment | None:
        """The assessment shown to the user: advanced supersedes basic."""
        return self.advanced if self.advanced is not None else self.basic

    @property
    def assessment_stage(self) -> AnalysisStage | None:
        if self.advanced is not None:
            return AnalysisStage.ADVANCED
        if self.basic is not None:
            return AnalysisStage.BASIC
        return None


@dataclass(frozen=True)
class Dispatch:
    generation: int
    request: AnalysisRequest


class PipelineController:
    """
    Owns one PipelineState and is its only writer.

    The low-level API (`submit` / `request_upgrade` / `resolve`) separates
    dispatching from applying results, so callers running the provider call
    elsewhere still get stale-response suppression. `analyze` and `upgrade`
    run the whole round trip synchronously.
    """

    def __init__(self, client: AnalysisClient | None = None, *, offer_upgrade: bool | None = None) -> None:
        self._client = client
        self.offer_upgrade = settings.OFFER_ADVANCED_ANALYSIS if offer_upgrade is None else offer_upgrade
        self.state = PipelineState()

    @property
    def client(self) -> AnalysisClient:
        if self._client is None:
            self._client = AnalysisClient()
        return self._client

    # --------------------------------------------------
    # Classifier feedback
    # --------------------------------------------------
    def preview(self, text: str) -> list[RiskSpan]:
        """
        Run the offline classifier on the current input. Never blocks on I/O.
        State only tracks the draft while idle; once an incident is submitted
        its text and highlights stay tied to the assessments until reset.
        """
        spans = classify(text)
        if self.state.stage == PipelineStage.IDLE:
            self.state.incident = text
            self.state.highlights = spans
        return spans

    # --------------------------------------------------
    # Transitions
    # --------------------------------------------------
    def submit(self, text: str) -> Dispatch:
        if self.state.busy:
            raise PipelineTransitionError(f"cannot submit while {self.state.stage.value}")
        if not text or not text.strip():
            raise ValueError("incident text is empty")

        generation = self.state.generation + 1
        self.state = PipelineState(
            stage=PipelineStage.RUNNING_BASIC,
            incident=text,
            highlights=classify(text),
            generation=generation,
        )
        logger.info("gen=%s basic analysis dispatched (%s chars)", generation, len(text))
        return Dispatch(generation=generation, request=AnalysisRequest(incident=text, stage=AnalysisStage.BASIC))

    def request_upgrade(self) -> Dispatch:
        s = self.state
        allowed = s.stage == PipelineStage.AWAITING_UPGRADE or (
            s.stage == PipelineStage.ERRORED and s.basic is not None and s.advanced is None
        )
        if not allowed or s.basic is None:
            raise PipelineTransitionError(f"advanced analysis is not available while {s.stage.value}")

        s.stage = PipelineStage.RUNNING_ADVANCED
        s.error = None
        s.error_status = None
        logger.info("gen=%s advanced analysis dispatched", s.generation)
        return Dispatch(
            generation=s.generation,
            request=AnalysisRequest(
                incident=s.incident,
                stage=AnalysisStage.ADVANCED,
                priorResult=s.basic.model_copy(deep=True),
            ),
        )

    def resolve(self, dispatch: Dispatch, outcome: RawProviderResponse | ProviderError) -> bool:
        """
        Apply a provider outcome. Returns False (and changes nothing) when the
        dispatch is stale: issued before a reset, or for a stage no longer running.
        """
        s = self.state
        expected = (
            PipelineStage.RUNNING_BASIC
            if dispatch.request.stage == AnalysisStage.BASIC
            else PipelineStage.RUNNING_ADVANCED
        )
        if dispatch.generation != s.generation or s.stage != expected:
            logger.info(
                "Discarding stale %s response (gen=%s, current gen=%s, stage=%s)",
                dispatch.request.stage.value,
                dispatch.generation,
                s.generation,
                s.stage.value,
            )
            return False

        if isinstance(outcome, ProviderError):
            s.stage = PipelineStage.ERRORED
            s.error = outcome.message
            s.error_status = outcome.status_code
            logger.warning("gen=%s %s stage failed: %s", s.generation, dispatch.request.stage.value, outcome.message)
            return True

        assessment = normalize(outcome)
        if dispatch.request.stage == AnalysisStage.BASIC:
            s.basic = assessment
            s.stage = PipelineStage.AWAITING_UPGRADE if self.offer_upgrade else PipelineStage.COMPLETE
        else:
            s.advanced = assessment
            s.stage = PipelineStage.COMPLETE
        logger.info(
            "gen=%s %s stage -> %s (%s/%s)",
            s.generation,
            dispatch.request.stage.value,
            s.stage.value,
            assessment.threatLevel.value,
            assessment.riskScore,
        )
        return True

    def finish(self) -> None:
        """The user declined the advanced pass."""
        if self.state.stage != PipelineStage.AWAITING_UPGRADE:
            raise PipelineTransitionError(f"cannot finish while {self.state.stage.value}")
        self.state.stage = PipelineStage.COMPLETE

    def reset(self) -> None:
        """New analysis: valid from any stage, in-flight work is abandoned."""
        self.state = PipelineState(generation=self.state.generation + 1)

    # --------------------------------------------------
    # Synchronous round trips
    # --------------------------------------------------
    def analyze(self, text: str) -> PipelineState:
        client = self.client
        dispatch = self.submit(text)
        self.resolve(dispatch, client.send(dispatch.request))
        return self.state

    def upgrade(self) -> PipelineState:
        client = self.client
        dispatch = self.request_upgrade()
        self.resolve(dispatch, client.send(dispatch.request))
        return self.state

    # --------------------------------------------------
    # Report
    # --------------------------------------------------
    def report(self, timestamp: datetime | None = None, report_id: str | None = None) -> str:
        s = self.state
        assessment = s.assessment
        if assessment is None or s.busy:
            raise PipelineTransitionError("no completed assessment to report on")

        timestamp = timestamp or datetime.now(timezone.utc)
        meta = ReportMeta(
            timestamp=timestamp,
            incident_id=report_id or make_report_id(timestamp),
            stage=s.assessment_stage,
            incident=s.incident,
        )
        return generate_report(assessment, meta, basic=s.basic if s.advanced is not None else None)
