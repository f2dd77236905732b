"""
Domain models and value objects.

Contains the request/result entities of the odd zeta engine.
"""

from src.core.domain.zeta import (
    ZETA_N_MAX,
    ZETA_N_MIN,
    ConvergencePoint,
    CrossCheck,
    FormulaComponent,
    ZetaRequest,
    ZetaResult,
    check_engine_argument,
    validate_zeta_argument,
)

__all__ = [
    # Argument domain
    "ZETA_N_MIN",
    "ZETA_N_MAX",
    "validate_zeta_argument",
    "check_engine_argument",
    # Models
    "ZetaRequest",
    "ConvergencePoint",
    "FormulaComponent",
    "CrossCheck",
    "ZetaResult",
]
