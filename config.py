import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # Server
    api_host: str = os.getenv("HOST", "0.0.0.0")
    api_port: int = int(os.getenv("PORT", "3001"))

    # Database
    database_path: str = os.getenv("DB_PATH", "./data/audiobooks.db")

    # Open Library lookup
    openlibrary_url: str = os.getenv("OPENLIBRARY_URL", "https://openlibrary.org")
    openlibrary_timeout: float = float(os.getenv("OPENLIBRARY_TIMEOUT", "5"))
    enable_enrichment: bool = _env_flag("ENABLE_ENRICHMENT", "True")

    # Client application
    static_dir: str = os.getenv("STATIC_DIR", os.path.join(_BASE_DIR, "static"))

    app_name: str = os.getenv("APP_NAME", "Audiobook Library")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
