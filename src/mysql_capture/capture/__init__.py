"""
capture - Change capture lifecycle and activity suppression.
"""

from mysql_capture.capture.activity import ActivitySignal
from mysql_capture.capture.manager import TriggerManager

__all__ = [
    "ActivitySignal",
    "TriggerManager",
]
