"""Temporal consistency tracking for resolved detections."""

from .candidates import CandidateTracker

__all__ = ["CandidateTracker"]
