"""
External game client interfaces.

Read-only state queries and action execution consumed as opaque
collaborators, plus the value types that cross that boundary.
"""
