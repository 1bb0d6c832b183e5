"""Query and tile payload validation"""
from .data_validator import DataValidator, ValidationResult, parse_bbox

__all__ = ["DataValidator", "ValidationResult", "parse_bbox"]
