"""Validation package."""

from finance.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
