"""
mapbot - Instance Runner Control Layer

Drives an external game client through a repeatable instance loop: open the
apparatus, enter the instance, clear and loot it, return to the safe area and
stash. Built around a priority-ordered task orchestrator, bounded polling,
stuck detection, a consecutive-failure circuit breaker and a reference price
cache.
"""

__version__ = "0.1.0"
__author__ = "mapbot Team"
