"""Archival pipeline for retention-tracked entity classes."""

from storeguard.compliance.archival.pipeline import ArchivalPipeline

__all__ = ["ArchivalPipeline"]
