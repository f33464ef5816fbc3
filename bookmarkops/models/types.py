"""
types.
"""

from __future__ import annotations

import time
from typing import Any

JsonDict = dict[str, Any]


def now_ms() -> int:
    """
    Horodatage epoch en millisecondes (format des enregistrements).
    """
    return int(time.time() * 1000)
