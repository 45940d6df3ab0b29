"""Validation package."""

from vyaya.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
