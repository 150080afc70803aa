from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time

from models.assessment_schemas import AnalysisRequest, AnalysisStage
from reasoning.prompts import build_prompt
from reasoning.transports import Transport, build_transport

logger = logging.getLogger(__name__)


class ProviderErrorKind(str, Enum):
    TRANSPORT = "transport"
    PROVIDER_STATUS = "provider_status"
    MALFORMED_PAYLOAD = "malformed_payload"


@dataclass(frozen=True)
class RawProviderResponse:
    text: str
    stage: AnalysisStage
    status_code: int = 200
    provider: str = ""
    model: str = ""
    elapsed_ms: int = 0


@dataclass(frozen=True)
class ProviderError:
    kind: ProviderErrorKind
    message: str
    stage: AnalysisStage
    status_code: int | None = None

    @property
    def user_message(self) -> str:
        if self.kind == ProviderErrorKind.TRANSPORT:
            return "We couldn't reach the analysis service. Please try again."
        if self.kind == ProviderErrorKind.PROVIDER_STATUS:
            return f"The analysis service returned an error (status {self.status_code}). Please try again."
        return "The analysis service returned an empty response. Please try again."


class AnalysisClient:
    """
    Sends one AnalysisRequest to the provider. Never retries and never
    raises: every failure comes back as a ProviderError.
    """

    def __init__(self, transport: Transport | None = None) -> None:
        self.transport = transport if transport is not None else build_transport()

    def send(self, request: AnalysisRequest) -> RawProviderResponse | ProviderError:
        stage = request.stage
        started = time.monotonic()

        try:
            prompt = build_prompt(request)
            response = self.transport.post(prompt)
        except Exception as e:
            logger.warning("[%s] %s transport failure: %s", stage.value, self.transport.name, e)
            return ProviderError(
                kind=ProviderErrorKind.TRANSPORT,
                message=f"Could not reach analysis provider: {e}",
                stage=stage,
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)

        if not 200 <= response.status_code < 300:
            detail = self.transport.error_message(response.body)
            logger.warning(
                "[%s] %s returned status %s: %s", stage.value, self.transport.name, response.status_code, detail
            )
            message = f"Analysis provider returned status {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            return ProviderError(
                kind=ProviderErrorKind.PROVIDER_STATUS,
                message=message,
                stage=stage,
                status_code=response.status_code,
            )

        text = self.transport.extract_text(response.body)
        if not text or not text.strip():
            logger.warning("[%s] %s returned no text content", stage.value, self.transport.name)
            return ProviderError(
                kind=ProviderErrorKind.MALFORMED_PAYLOAD,
                message="Analysis provider response contained no text content",
                stage=stage,
                status_code=response.status_code,
            )

        logger.info(
            "[%s] %s/%s answered in %sms (%s chars)",
            stage.value,
            self.transport.name,
            self.transport.model,
            elapsed_ms,
            len(text),
        )
        return RawProviderResponse(
            text=text,
            stage=stage,
            status_code=response.status_code,
            provider=self.transport.name,
            model=self.transport.model,
            elapsed_ms=elapsed_ms,
        )
