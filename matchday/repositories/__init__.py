"""Repository interfaces and implementations.

This package defines abstract repository interfaces for the domain entities and
their SQLite adapters under :mod:`matchday.repositories.sqlite`.
"""
