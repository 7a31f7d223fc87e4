"""Shared in-memory primitives: a LIFO stack and an indexable array.

Both are safe to mutate from many workers at once without a structure-wide lock.
"""
