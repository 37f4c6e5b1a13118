"""Environment-driven settings for askrelay."""
from dataclasses import dataclass
from functools import lru_cache
import os
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

PROVIDER_NAMES = ("openai_responses", "openai_chat", "poe", "gemini", "local")

DEFAULT_BRAND = "SzalAI"
DEFAULT_SYSTEM_PROMPT = (
    "You are {brand}. Answer in Polish, briefly and to the point. "
    "Do not pretend to be the official ChatGPT."
)


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    app_version: str = "0.1.0"
    port: int = 3000
    strict_config: bool = False

    brand_name: str = DEFAULT_BRAND
    vendor_names: Tuple[str, ...] = ("ChatGPT", "OpenAI")
    system_prompt: str = ""

    providers: Tuple[str, ...] = ("openai_responses", "openai_chat")
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    poe_api_key: str = ""
    poe_base_url: str = "https://api.poe.com/v1"
    poe_model: str = "GPT-4o-Mini"
    local_model_path: str = ""
    local_model_context: int = 2048

    upstream_timeout: float = 15.0
    max_output_tokens: int = 300
    max_message_chars: int = 1200
    preview_chars: int = 160

    max_body_mb: float = 1.0
    rate_limit_requests: int = 30
    rate_limit_window_seconds: int = 60
    cors_origins: Tuple[str, ...] = ("*",)

    @property
    def max_content_length(self) -> int:
        return int(self.max_body_mb * 1024 * 1024)

    @property
    def instructions(self) -> str:
        """System instruction sent with every upstream call."""
        template = self.system_prompt or DEFAULT_SYSTEM_PROMPT
        return template.replace("{brand}", self.brand_name)

    def validate(self) -> list:
        """Return a list of configuration warnings."""
        errors = []
        if not self.providers:
            errors.append("PROVIDERS must name at least one provider")
        for name in self.providers:
            if name not in PROVIDER_NAMES:
                errors.append(f"unknown provider in PROVIDERS: {name}")
        if not self.brand_name.strip():
            errors.append("BRAND_NAME must not be empty")
        for name in self.vendor_names:
            if name.lower() in self.brand_name.lower():
                errors.append(f"BRAND_VENDOR_NAMES entry '{name}' is part of BRAND_NAME and will not be replaced")
        if self.upstream_timeout <= 0:
            errors.append("UPSTREAM_TIMEOUT must be > 0")
        if self.max_message_chars <= 0:
            errors.append("MAX_MESSAGE_CHARS must be > 0")
        if self.max_output_tokens <= 0:
            errors.append("MAX_OUTPUT_TOKENS must be > 0")
        if self.rate_limit_requests < 0 or self.rate_limit_window_seconds < 0:
            errors.append("rate limit values must be >= 0")
        if self.port <= 0 or self.port > 65535:
            errors.append("PORT must be between 1 and 65535")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Load settings from environment variables."""
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR") or None,
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        port=int(os.getenv("PORT", "3000")),
        strict_config=_env_flag("STRICT_CONFIG"),
        brand_name=os.getenv("BRAND_NAME", DEFAULT_BRAND),
        vendor_names=_split_csv(os.getenv("BRAND_VENDOR_NAMES", "ChatGPT,OpenAI")),
        system_prompt=os.getenv("SYSTEM_PROMPT", ""),
        providers=_split_csv(os.getenv("PROVIDERS", "openai_responses,openai_chat")),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
        poe_api_key=os.getenv("POE_API_KEY", ""),
        poe_base_url=os.getenv("POE_BASE_URL", "https://api.poe.com/v1"),
        poe_model=os.getenv("POE_MODEL", "GPT-4o-Mini"),
        local_model_path=os.getenv("LOCAL_MODEL_PATH", ""),
        local_model_context=int(os.getenv("LOCAL_MODEL_CONTEXT", "2048")),
        upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", "15")),
        max_output_tokens=int(os.getenv("MAX_OUTPUT_TOKENS", "300")),
        max_message_chars=int(os.getenv("MAX_MESSAGE_CHARS", "1200")),
        preview_chars=int(os.getenv("PREVIEW_CHARS", "160")),
        max_body_mb=float(os.getenv("MAX_BODY_MB", "1")),
        rate_limit_requests=int(os.getenv("RATE_LIMIT_REQUESTS", "30")),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
    )
