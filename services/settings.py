# services/settings.py
"""
Runtime configuration read from the environment.
Entry points call load_dotenv() before importing this module so values from .env apply.
"""
import os


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def validate_threshold(value: float) -> float:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"minimum confidence must be between 0 and 1, got {value}")
    return value


MIN_CONFIDENCE = validate_threshold(_float_env("MAPPING_MIN_CONFIDENCE", 0.5))

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://api.openai.com/v1/chat/completions")
LLM_TEMPERATURE = _float_env("LLM_TEMPERATURE", 0.2)
LLM_TIMEOUT = _float_env("LLM_TIMEOUT", 60.0)

# where converted manifests land when no output path is given
MAPPING_OUT_DIR = os.getenv("MAPPING_OUT_DIR", "static/mappings")

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)
TASK_TIME_LIMIT = int(os.getenv("TASK_TIME_LIMIT", 600))
TASK_SOFT_TIME_LIMIT = int(os.getenv("TASK_SOFT_TIME_LIMIT", 540))
