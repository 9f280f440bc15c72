"""
Versioned HTTP routes of the marketplace API.

Each version lives in its own subpackage exposing a ``router``.
"""
