"""Security layer - validation of candidate SQL."""
from .sql_validator import SQLValidator, ValidatorConfig

__all__ = ['SQLValidator', 'ValidatorConfig']
