import os
from dotenv import load_dotenv

# --------------------------------------------------
# Load environment variables ONCE
# --------------------------------------------------
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Centralized configuration.
    This file must NOT import any logic or SDK modules.
    """

    def __init__(self) -> None:
        # ---------------------------
        # Analysis Provider Configuration
        # ---------------------------

        # mock | gemini | anthropic
        # "mock" runs fully offline with deterministic heuristics.
        self.LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "mock")

        # Model name for the selected provider.
        # Left empty, each provider picks its own default.
        self.LLM_MODEL_NAME: str = os.getenv("LLM_MODEL_NAME", "")

        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")

        self.ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
        self.ANTHROPIC_API_URL: str = os.getenv(
            "ANTHROPIC_API_URL",
            "https://api.anthropic.com/v1/messages",
        )
        self.ANTHROPIC_API_VERSION: str = os.getenv("ANTHROPIC_API_VERSION", "2023-06-01")

        self.LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "2000"))

        # Upper bound on a single provider call (seconds).
        # The provider's own limits usually kick in first.
        self.LLM_REQUEST_TIMEOUT_SECONDS: float = float(
            os.getenv("LLM_REQUEST_TIMEOUT_SECONDS", "60")
        )

        # ---------------------------
        # Service
        # ---------------------------

        # Optional endpoint auth (x-api-key header). Empty disables the check.
        self.API_KEY: str = os.getenv("API_KEY", "")

        # When disabled, a successful basic analysis completes the pipeline directly.
        self.OFFER_ADVANCED_ANALYSIS: bool = _env_bool("OFFER_ADVANCED_ANALYSIS", "true")

        self.REPORT_ID_PREFIX: str = os.getenv("REPORT_ID_PREFIX", "SCA")

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


# --------------------------------------------------
# Singleton settings object
# --------------------------------------------------
settings = Settings()
