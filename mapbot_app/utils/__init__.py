"""
Utility functions module.

Clock handling and the bounded polling primitive shared by every component.

Time Semantics:
- Durations and timeouts are ALWAYS measured on a monotonic clock
- Wall-clock time is only used for record timestamps (price refreshes, logs)
- Every component accepts an injectable clock so tests can simulate elapsed
  time without real delays
"""
