"""Shared helpers that are not specific to a pipeline stage."""

__all__ = ["file_io"]
