import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    storage_key: str = "ledger_transactions"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    log_level: str = "INFO"
    trend_window: int = 7


def get_settings() -> Settings:
    data_dir = Path(os.getenv("LEDGER_DATA_DIR") or Path.cwd() / ".data")
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "ledger.sqlite",
        storage_key=os.getenv("LEDGER_STORAGE_KEY", "ledger_transactions"),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        log_level=os.getenv("LEDGER_LOG_LEVEL", "INFO"),
        trend_window=int(os.getenv("LEDGER_TREND_WINDOW", "7")),
    )
