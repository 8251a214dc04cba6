"""Exceptions raised by the fractal grid engine."""

from __future__ import annotations


class FractalGridError(Exception):
    """Base class for every error raised by :mod:`fractalgrid`."""


class ConfigurationError(FractalGridError, ValueError):
    """Invalid evaluation parameters, reported before any work starts."""


class AssemblyError(FractalGridError):
    """A pixel buffer was finalized with missing, duplicated or overlapping tiles."""


class PoolClosedError(FractalGridError, RuntimeError):
    """Work was dispatched against a worker pool that has been shut down."""
