from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Stage budgets. Fixed by design; components only accept overrides as
# constructor arguments.
CLIENT_TIMEOUT_SECONDS = 0.3
UPSTREAM_FETCH_TIMEOUT_SECONDS = 0.2
PERSIST_TIMEOUT_SECONDS = 0.01

CURRENCY_PAIR = "USD-BRL"
CALLER_TIMEOUT_HEADER = "X-Request-Timeout-Ms"


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    DATA_DIR, DB_FILENAME, UPSTREAM_URL, RELAY_URL). Stage budgets are not part of
    the settings on purpose.
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Rate Relay"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "Rates.db"
    db_path: Optional[Path] = None  # derived if not provided

    # Upstream rate source
    upstream_url: str = f"https://economia.awesomeapi.com.br/json/last/{CURRENCY_PAIR}"

    # Server binding
    host: str = "127.0.0.1"
    port: int = 8080

    # Client side
    relay_url: str = "http://localhost:8080/cotacao"
    artifact_path: Path = Path("cotacao.txt")

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
