import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        user_id: str,
        budget_warning_pct: float,
        bcv_rate_url: str,
        bcv_timeout_secs: float,
        bcv_refresh_minutes: int,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.user_id = user_id
        self.budget_warning_pct = budget_warning_pct
        self.bcv_rate_url = bcv_rate_url
        self.bcv_timeout_secs = bcv_timeout_secs
        self.bcv_refresh_minutes = bcv_refresh_minutes


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANZAS_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finanzas.db"
    database_url = os.getenv("FINANZAS_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANZAS_TIMEZONE", "America/Caracas")
    user_id = os.getenv("FINANZAS_USER_ID", "local")
    budget_warning_pct = float(os.getenv("FINANZAS_BUDGET_WARNING_PCT", "80"))
    bcv_rate_url = os.getenv(
        "FINANZAS_BCV_RATE_URL", "https://ve.dolarapi.com/v1/dolares/oficial"
    )
    bcv_timeout_secs = float(os.getenv("FINANZAS_BCV_TIMEOUT_SECS", "5"))
    bcv_refresh_minutes = int(os.getenv("FINANZAS_BCV_REFRESH_MINUTES", "60"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        user_id=user_id,
        budget_warning_pct=budget_warning_pct,
        bcv_rate_url=bcv_rate_url,
        bcv_timeout_secs=bcv_timeout_secs,
        bcv_refresh_minutes=bcv_refresh_minutes,
    )
