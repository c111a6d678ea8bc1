"""Shared type aliases used across wayfinder modules."""

from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeAlias

# Fire-and-forget callback (haptics, dismissal completions)
Callback: TypeAlias = Callable[[], Any]

# Source of "now" for last_modified stamps
Clock: TypeAlias = Callable[[], datetime]
