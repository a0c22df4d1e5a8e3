import json
import re
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load env values for components that read os.environ directly (alembic env, scripts).
_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)

_SWISS_UID_RE = re.compile(r"^CHE-[0-9]{3}\.[0-9]{3}\.[0-9]{3}$")


def _coerce_json(value: str):
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./ugc_missions.db"
    DB_POOL_SIZE: int = 20
    DB_POOL_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30

    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # Workflow policy
    STRICT_STEP_ORDER: bool = False
    BRAND_REVISION_CAP: int = 2

    # Operator (mandant) identity printed on mandate contracts and invoices.
    OPERATOR_COMPANY_NAME: str = "LGMA SA — Agence Mosh"
    OPERATOR_ADDRESS: str = "Lausanne, Suisse"
    OPERATOR_UID: str = "CHE-000.000.000"
    OPERATOR_EMAIL: str = "contact@agencemosh.ch"

    VAT_RATE_PERCENT: float = 8.1
    PAYMENT_TERM_DAYS: int = 30
    INCLUDED_REVISIONS: int = 2
    INVOICE_NUMBER_PREFIX: str = "MOSH"

    # When unset, rendered documents are kept in the database only.
    DOCUMENT_STORAGE_DIR: str | None = None

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            decoded = _coerce_json(value)
            if isinstance(decoded, list):
                return decoded
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("OPERATOR_UID")
    @classmethod
    def validate_operator_uid(cls, value: str) -> str:
        if not _SWISS_UID_RE.match(value):
            raise ValueError("OPERATOR_UID must use the Swiss format CHE-xxx.xxx.xxx")
        return value

    @field_validator("BRAND_REVISION_CAP", "PAYMENT_TERM_DAYS", "INCLUDED_REVISIONS")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("VAT_RATE_PERCENT")
    @classmethod
    def validate_vat_rate(cls, value: float) -> float:
        if value < 0 or value >= 100:
            raise ValueError("VAT_RATE_PERCENT must be within [0, 100)")
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
