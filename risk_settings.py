"""
Risk engine runtime configuration.

Logging and execution settings, read from the environment.
Scoring thresholds and weights are NOT configured here - see thresholds.py.
"""

import os

__version__ = "0.3.0"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Logging configuration
LOG_CONFIG = {
    "level": os.getenv("RISK_LOG_LEVEL", "INFO").upper(),
    "format": os.getenv("RISK_LOG_FORMAT", "console").strip().lower(),  # "json" or "console"
}

# Analyzer execution settings
ENGINE_CONFIG = {
    "parallel_analyzers": _env_flag("RISK_PARALLEL_ANALYZERS"),
    "max_workers": int(os.getenv("RISK_MAX_WORKERS", 6)),
}
