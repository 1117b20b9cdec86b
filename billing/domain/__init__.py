"""
Pure billing rules.

Nothing in this package touches the database or the clock: callers pass
entities, the current date and the current time explicitly.
"""
