"""
Package: notify
Description: Operator escalation when retries are exhausted.
"""

from .escalation import EscalationSink, LogEscalationSink, SMTPEscalationSink

__all__ = [
    "EscalationSink",
    "LogEscalationSink",
    "SMTPEscalationSink",
]
