"""
Control primitives module.

Stuck detection over position samples and the process-wide consecutive
failure circuit breaker. Both are plain service instances constructed by the
engine and handed to the tasks that need them.
"""
