"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines all service-wide constants.

- Provides single source of truth for magic values
- Documents the meaning of each constant
- Prevents hardcoding throughout codebase

============================================================
DESIGN PRINCIPLES
============================================================
- All constants are immutable
- Related constants are grouped
- No business logic here

============================================================
"""

# ============================================================
# SYSTEM CONSTANTS
# ============================================================

SERVICE_NAME = "power-position-reporting"
SERVICE_VERSION = "1.0.0"

# ============================================================
# POWER TRADING DAY
# ============================================================

MARKET_TIMEZONE = "Europe/London"
"""Zone in which trade dates are requested from the trade source."""

TRADING_DAY_START_HOUR = 23
"""The power trading day starts at 23:00 on the previous calendar day."""

HOURS_PER_DAY = 24

# ============================================================
# REPORT EXPORT
# ============================================================

CSV_HEADER = ("Local Time", "Volume")
REPORT_FILENAME_TEMPLATE = "PowerPosition_report.{timestamp:%Y%m%d_%H%M}.csv"
DEFAULT_OUTPUT_DIRECTORY = "."

# ============================================================
# RETRY
# ============================================================

REPORT_GENERATION_OPERATION = "ReportGeneration"
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_RETRY_DELAY_SECONDS = 30.0
