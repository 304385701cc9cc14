"""
Shared application exceptions.

Only these escape to the HTTP layer; provider errors are absorbed by the
adapters and turned into simulated results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class AppError(Exception):
    message: str = "Application error"
    code: str = "APP_ERROR"
    details: Optional[dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class NotFoundError(AppError):
    message: str = "Not found"
    code: str = "NOT_FOUND"


@dataclass
class ValidationError(AppError):
    message: str = "Invalid request"
    code: str = "VALIDATION_ERROR"
