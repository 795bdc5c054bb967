"""Batch analyses over the normalized event stream.

Every detector is a pure function of (events, time window, config) and
recomputes from scratch on each call.
"""

__all__: list[str] = []
