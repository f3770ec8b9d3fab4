"""
Package: delivery
Description: Event delivery, fanout and retry scheduling.

Provides the destination fanout, the retry scheduler with exponential
backoff, the primary queue consumer and the retry worker pool.
"""
