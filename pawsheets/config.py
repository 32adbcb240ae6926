# pawsheets/config.py
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _env(name: str, default: str) -> str:
    return os.environ.get(f"PAWSHEETS_{name}", default)


class Settings(BaseModel):
    # origin the iframe snippet points at
    host_origin: str = "http://localhost:8000"
    # base for public image URLs handed out by the store
    public_base_url: str = "http://localhost:8000"
    autosave_delay: float = 2.0
    default_rows: int = 5
    default_columns: int = 5
    cors_origins: List[str] = [
        "http://localhost",
        "http://localhost:8501",
        "http://127.0.0.1",
        "http://127.0.0.1:8501",
    ]
    log_level: str = "INFO"
    embed_refresh_seconds: int = 5
    # used by the Streamlit editor
    api_base: str = "http://127.0.0.1:8000"


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    origins = _env("CORS_ORIGINS", "")
    return Settings(
        host_origin=_env("HOST_ORIGIN", defaults.host_origin),
        public_base_url=_env("PUBLIC_BASE_URL", defaults.public_base_url),
        autosave_delay=float(_env("AUTOSAVE_DELAY", str(defaults.autosave_delay))),
        default_rows=int(_env("DEFAULT_ROWS", str(defaults.default_rows))),
        default_columns=int(_env("DEFAULT_COLUMNS", str(defaults.default_columns))),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or defaults.cors_origins,
        log_level=_env("LOG_LEVEL", defaults.log_level),
        embed_refresh_seconds=int(_env("EMBED_REFRESH_SECONDS", str(defaults.embed_refresh_seconds))),
        api_base=_env("API_BASE", defaults.api_base),
    )
