"""Bitware orchestrator — database-driven pipeline orchestration service."""

__version__ = "0.1.0"
