"""
config.py — Studio Fee Calculator runtime configuration

Environment-driven defaults, loaded once from the process environment and an
optional .env file. Engine functions take every value as an argument; these
constants only supply the defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Studio hourly rate used by the time-estimate path when a project has none
STUDIO_HOURLY_RATE: float = float(os.getenv("STUDIO_HOURLY_RATE", "150"))

# JSON project store location
DATA_DIR: Path = Path(os.getenv("STUDIO_DATA_DIR", str(Path.home() / ".studio_fees"))).expanduser()

# Default role split for new team-distribution state (percent)
LEAD_PERCENTAGE: float = float(os.getenv("STUDIO_LEAD_PERCENTAGE", "20"))
IMPLEMENTER_PERCENTAGE: float = float(os.getenv("STUDIO_IMPLEMENTER_PERCENTAGE", "80"))

LOG_LEVEL: str = os.getenv("STUDIO_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
