import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_BOOTSTRAP_API_KEY = "change-this-api-key"


def _load_dotenv() -> None:
    dotenv_path = PROJECT_ROOT / ".env"
    if not dotenv_path.exists():
        return

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        os.environ.setdefault(key, value)


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    app_name: str = Field(default="StrikeLedger")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    database_url: str = Field(default="sqlite:///./strikeledger.db")
    cors_origins: str = Field(default="*")
    auth_enabled: bool = Field(default=True)
    bootstrap_admin_address: str = Field(default="0x00000000000000000000000000000000000000ad")
    bootstrap_admin_api_key: str = Field(default=DEFAULT_BOOTSTRAP_API_KEY)
    ledger_address: str = Field(default="0x000000000000000000000000000000000000c0de")
    treasury_address: str = Field(default="0x0000000000000000000000000000000000007ea5")
    equity_symbol: str = Field(default="EQT")
    equity_decimals: int = Field(default=18, ge=0, le=36)
    equity_supply_cap: int = Field(default=1_000_000_000, gt=0)
    payment_symbol: str = Field(default="USDC")
    payment_decimals: int = Field(default=6, ge=0, le=36)

    @property
    def cors_origin_list(self) -> list[str]:
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def equity_supply_cap_units(self) -> int:
        return self.equity_supply_cap * 10**self.equity_decimals

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_dotenv()
        defaults = cls()
        return cls(
            app_name=os.getenv("APP_NAME", defaults.app_name),
            environment=os.getenv("ENVIRONMENT", defaults.environment),
            debug=_flag("DEBUG", "false"),
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            cors_origins=os.getenv("CORS_ORIGINS", defaults.cors_origins),
            auth_enabled=_flag("AUTH_ENABLED", "true"),
            bootstrap_admin_address=os.getenv("BOOTSTRAP_ADMIN_ADDRESS", defaults.bootstrap_admin_address),
            bootstrap_admin_api_key=os.getenv("BOOTSTRAP_ADMIN_API_KEY", defaults.bootstrap_admin_api_key),
            ledger_address=os.getenv("LEDGER_ADDRESS", defaults.ledger_address),
            treasury_address=os.getenv("TREASURY_ADDRESS", defaults.treasury_address),
            equity_symbol=os.getenv("EQUITY_SYMBOL", defaults.equity_symbol),
            equity_decimals=int(os.getenv("EQUITY_DECIMALS", str(defaults.equity_decimals))),
            equity_supply_cap=int(os.getenv("EQUITY_SUPPLY_CAP", str(defaults.equity_supply_cap))),
            payment_symbol=os.getenv("PAYMENT_SYMBOL", defaults.payment_symbol),
            payment_decimals=int(os.getenv("PAYMENT_DECIMALS", str(defaults.payment_decimals))),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
