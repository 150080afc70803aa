from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Literal, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from config.settings import settings
from models.assessment_schemas import AnalysisRequest, AnalysisStage, Assessment, AnalyzeRequest
from reasoning.llm_client import AnalysisClient, ProviderError
from reasoning.normalizer import apply_defaults, fallback_assessment, normalize
from reasoning.transports import ConfigurationError, build_transport
from reporting.report_generator import ReportMeta, generate_report, make_report_id

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Scam Assessment API",
    description=(
        "Paste a suspicious email, SMS or call transcript and get a structured risk assessment. "
        "A basic pass runs first; an advanced pass can refine it using the basic result."
    ),
    version="1.0.0",
)

# --------------------------------------------------
# CORS (optional; helpful for browser front-ends)
# --------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------------------------------------------
# API key auth (only when API_KEY is configured)
# --------------------------------------------------
def require_api_key(x_api_key: str | None = Header(None, alias="x-api-key")) -> None:
    if not settings.API_KEY:
        return

    if x_api_key != settings.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def _error_response(status_code: int, error: str, user_message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "userMessage": user_message})


def _fallback_response(status_code: int, error: str, user_message: str) -> JSONResponse:
    """
    Error responses from /analyze still carry an Assessment-shaped body so
    callers never have to special-case a bare error.
    """
    body = fallback_assessment(
        "The assessment could not be completed. Treat this message with caution until verified.",
        error=error,
        userMessage=user_message,
    )
    return JSONResponse(status_code=status_code, content=body.to_wire())


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return _error_response(400, f"Invalid request body: {detail}", "We couldn't read that request.")


# --------------------------------------------------
# Analysis
# --------------------------------------------------
@app.post("/analyze", dependencies=[Depends(require_api_key)])
def analyze(req: AnalyzeRequest) -> JSONResponse:
    incident = req.incident or ""
    if not incident.strip():
        return _error_response(400, "Missing incident data", "Please paste the message you want to check.")

    stage = AnalysisStage(req.analysisType)
    prior: Assessment | None = None
    if stage == AnalysisStage.ADVANCED:
        if not req.basicResults:
            return _error_response(
                400,
                "Missing basicResults for advanced analysis",
                "Run the basic analysis first, then request the advanced analysis.",
            )
        prior = Assessment.model_validate(apply_defaults(req.basicResults))

    try:
        client = AnalysisClient(build_transport(settings))
    except ConfigurationError as e:
        logger.error("Analysis provider not configured: %s", e)
        return _fallback_response(
            500,
            f"Service configuration error: {e}",
            "The analysis service is not configured. Please try again later.",
        )

    outcome = client.send(AnalysisRequest(incident=incident, stage=stage, priorResult=prior))
    if isinstance(outcome, ProviderError):
        return _fallback_response(502, outcome.message, outcome.user_message)

    return JSONResponse(status_code=200, content=normalize(outcome).to_wire())


@app.api_route(
    "/analyze",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
def analyze_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed", "userMessage": "Use POST to submit an analysis."},
        headers={"Allow": "POST"},
    )


# --------------------------------------------------
# Report
# --------------------------------------------------
class ReportRequest(BaseModel):
    assessment: dict[str, Any] = Field(...)
    analysisType: Literal["basic", "advanced"] = "basic"
    basicResults: Optional[dict[str, Any]] = None
    incident: Optional[str] = None


@app.post("/report", response_class=PlainTextResponse, dependencies=[Depends(require_api_key)])
def report(req: ReportRequest) -> str:
    stage = AnalysisStage(req.analysisType)
    assessment = Assessment.model_validate(apply_defaults(req.assessment))
    basic = Assessment.model_validate(apply_defaults(req.basicResults)) if req.basicResults else None
    now = datetime.now(timezone.utc)
    meta = ReportMeta(timestamp=now, incident_id=make_report_id(now), stage=stage, incident=req.incident)
    return generate_report(assessment, meta, basic=basic)


# --------------------------------------------------
# Health Check
# --------------------------------------------------
@app.get("/")
def root_get() -> dict:
    return {"status": "ok", "service": "scam-assessment", "version": app.version}


@app.get("/health")
def health() -> dict:
    return {"status": "healthy", "version": app.version, "provider": settings.LLM_PROVIDER}
