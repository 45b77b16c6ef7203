"""
Bundle Scanner package initializer.

This package exposes the primary coroutine ``analyze_bundle`` for external
usage. Other internal modules (grouper, classifier, clients) should be
imported explicitly from their respective files.
"""

from .bundle_analyzer import analyze_bundle  # noqa: F401

__all__ = ["analyze_bundle"]
