"""
Contract Validation Module

Валидация JSON контрактов движка ζ(n).
"""

from .validators import (
    ContractValidator,
    SchemaLoader,
    ZetaResponseValidator,
    validate_zeta_response,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "ZetaResponseValidator",
    # Functions
    "validate_zeta_response",
]
