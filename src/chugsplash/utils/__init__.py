from .json import canonical_json
from .logging import configure_logging
from .timestamps import now_iso, utc_now

__all__ = ["canonical_json", "configure_logging", "now_iso", "utc_now"]
