"""CLI layer: process entry, console output and error boundary.

This package is the outermost layer of the application.  It may import
from ``core``, ``infra`` and ``bootstrap``, but no other layer may import
from ``cli`` at module level.
"""
