"""Filters package: three-state visibility filtering."""

from .engine import FilterEngine, FilterSpec, FilterState, should_use_in_search

__all__ = ["FilterEngine", "FilterSpec", "FilterState", "should_use_in_search"]
