"""State layer.

Structures derived once from a normalized event stream: trip segments,
trip status changes and per-task aggregates.
"""
