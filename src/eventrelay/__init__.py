"""
Package: eventrelay
Description: At-least-once event delivery pipeline.

Events are ingested over HTTP onto a durable queue, fanned out to an
ordered set of destinations, and rescheduled with exponential backoff
when delivery fails until the retry ceiling is reached.
"""

__version__ = "0.1.0"
