import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .assets import DEFAULT_MAX_EDGE, DEFAULT_QUALITY
from .executor import DEFAULT_CONCURRENCY
from .inference import DEFAULT_IMAGE_MODEL, DEFAULT_MAX_ATTEMPTS, DEFAULT_TIMEOUT, GenAIClient
from .pricing import CostPolicy

DEFAULT_TEXT_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    replicate_api_token: Optional[str] = None
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    concurrency_limit: int = DEFAULT_CONCURRENCY
    max_edge: int = DEFAULT_MAX_EDGE
    jpeg_quality: int = DEFAULT_QUALITY
    request_timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    cost_policy: CostPolicy = CostPolicy.REQUESTED
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Resolve settings once from the environment (and a local .env file).

        Malformed numbers fall back to their defaults rather than failing
        the run.
        """
        if load_env_file:
            load_dotenv()

        policy_raw = (os.getenv("ECOMKIT_COST_POLICY") or "").strip().lower()
        try:
            policy = CostPolicy(policy_raw) if policy_raw else CostPolicy.REQUESTED
        except ValueError:
            policy = CostPolicy.REQUESTED

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            replicate_api_token=os.getenv("REPLICATE_API_TOKEN") or None,
            text_model=os.getenv("ECOMKIT_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
            image_model=os.getenv("ECOMKIT_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            concurrency_limit=max(1, _env_int("ECOMKIT_CONCURRENCY", DEFAULT_CONCURRENCY)),
            max_edge=max(1, _env_int("ECOMKIT_MAX_EDGE", DEFAULT_MAX_EDGE)),
            jpeg_quality=min(95, max(1, _env_int("ECOMKIT_JPEG_QUALITY", DEFAULT_QUALITY))),
            request_timeout=_env_float("ECOMKIT_REQUEST_TIMEOUT", DEFAULT_TIMEOUT),
            max_attempts=max(1, _env_int("ECOMKIT_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
            cost_policy=policy,
            log_level=(os.getenv("ECOMKIT_LOG_LEVEL") or "INFO").strip().upper(),
        )


def build_client(settings: Settings) -> GenAIClient:
    """Compose the one inference client shared by every job in this process."""
    import replicate
    from langchain_openai import ChatOpenAI

    if not settings.openai_api_key:
        raise RuntimeError(
            "OPENAI_API_KEY is not set. A valid API key is required for auditing and planning."
        )
    if not settings.replicate_api_token:
        raise RuntimeError(
            "REPLICATE_API_TOKEN is not set. A valid API token is required for image generation."
        )

    llm = ChatOpenAI(
        model=settings.text_model,
        temperature=0.4,
        api_key=settings.openai_api_key,
    )
    return GenAIClient(
        llm=llm,
        image_model=settings.image_model,
        replicate_client=replicate.Client(api_token=settings.replicate_api_token),
        timeout=settings.request_timeout,
        max_attempts=settings.max_attempts,
    )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw is not None and raw.strip() else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        value = float(raw) if raw is not None and raw.strip() else default
    except ValueError:
        return default
    return value if value > 0 else default
