import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel

from cinema.exceptions import MissingConfigError
from cinema.logging_config import get_logger, setup_logging

logger = get_logger("env_loader")

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"


class StudioConfig(BaseModel):
    api_key: str = ""
    image_api_key: str = ""
    image_model: str = DEFAULT_IMAGE_MODEL
    text_model: str = DEFAULT_TEXT_MODEL
    quality_tier: str = "4K"          # "1K" | "2K" | "4K"; pro image models only
    data_dir: Path = Path("storyboards")
    log_level: str = "INFO"

    @property
    def effective_image_key(self) -> str:
        # Drawing may use its own key; fall back to the text key
        return self.image_api_key or self.api_key


def quiet_logs():
    os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
    os.environ.setdefault("GRPC_CPP_ENABLE_STACKTRACE", "0")
    os.environ.setdefault("GRPC_ALTS_ENABLED", "0")
    import absl.logging as absl_logging
    absl_logging.set_verbosity(absl_logging.ERROR)


def load_env() -> str:
    # Always reload .env so a key changed on disk is picked up
    from dotenv import load_dotenv
    load_dotenv(override=True)
    return os.getenv("GEMINI_API_KEY", "") or os.getenv("GOOGLE_API_KEY", "")


def get_key_info(key: str) -> str:
    if not key:
        return "no key"
    return f"key_len={len(key)} | key_hash={abs(hash(key)) % 100000}"


def validate_key_format(k: str) -> bool:
    # Not a strict format check: just non-empty and no whitespace
    return bool(k and k.strip() and " " not in k)


def load_config(require_key: bool = False) -> StudioConfig:
    """
    Build the studio config from the environment (.env included).
    Raises MissingConfigError when require_key is set and no usable key exists.
    """
    quiet_logs()
    api_key = load_env()
    cfg = StudioConfig(
        api_key=api_key,
        image_api_key=os.getenv("GEMINI_IMAGE_API_KEY", ""),
        image_model=os.getenv("STUDIO_IMAGE_MODEL", "") or DEFAULT_IMAGE_MODEL,
        text_model=os.getenv("STUDIO_TEXT_MODEL", "") or DEFAULT_TEXT_MODEL,
        quality_tier=os.getenv("STUDIO_QUALITY_TIER", "") or "4K",
        data_dir=Path(os.getenv("STUDIO_DATA_DIR", "") or "storyboards"),
        log_level=os.getenv("STUDIO_LOG_LEVEL", "") or "INFO",
    )
    setup_logging(cfg.log_level)

    if require_key and not validate_key_format(cfg.effective_image_key):
        raise MissingConfigError(
            "GEMINI_API_KEY is not set",
            {"checked": ["GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_IMAGE_API_KEY"]},
        )
    logger.info(f"Config loaded | image_model={cfg.image_model} | text_model={cfg.text_model} | {get_key_info(cfg.api_key)}")
    return cfg


@lru_cache(maxsize=4)
def init_model(api_key: str, model_name: str):
    """Text model used for script drafting; one instance per (key, model)."""
    if not api_key:
        return None
    import google.generativeai as genai
    genai.configure(api_key=api_key)
    return genai.GenerativeModel(model_name)
