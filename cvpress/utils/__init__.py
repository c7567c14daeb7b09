"""
Shared utilities for CVPRESS.

Common functionality used across contexts:
- Timestamps
- Logging (loguru sessions and the pipeline event log)
- PDF inspection
- Settings
"""

from cvpress.utils.timestamp import now, now_exact, utc_now_iso

__all__ = ["now", "now_exact", "utc_now_iso"]
