"""Environment configuration for the cart engine and its stores."""
import os
from dataclasses import dataclass

# Upstash Redis (state store) - standard env var names per docs
UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# Supabase (park store)
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

CART_DATABASE_TABLE = os.environ.get("CART_DATABASE_TABLE", "shoppingcart")


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


CART_TTL_SECONDS = _int_env("CART_TTL_SECONDS", 86400)


@dataclass(frozen=True)
class FormatSettings:
    """Defaults used when a price is requested in formatted form."""
    decimals: int = 2
    decimal_point: str = "."
    thousands_sep: str = ","


def get_format_settings() -> FormatSettings:
    """Read formatting defaults from the environment."""
    return FormatSettings(
        decimals=_int_env("CART_FORMAT_DECIMALS", 2),
        decimal_point=os.environ.get("CART_FORMAT_DECIMAL_POINT", "."),
        thousands_sep=os.environ.get("CART_FORMAT_THOUSANDS_SEP", ","),
    )

# "memory" keeps cart state in-process, "remote" uses Upstash Redis + Supabase
CART_BACKEND = os.environ.get("CART_BACKEND", "memory").lower()
