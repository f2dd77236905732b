"""
Core math modules движка ζ(n)

Математические примитивы: рабочая точность, точные числа Бернулли,
сравнения high-precision значений.
"""

# Precision
from src.core.math.precision import (
    GUARD_DIGITS,
    OUTPUT_DECIMALS,
    WORKING_DPS_DEFAULT,
    WORKING_DPS_MIN,
    format_fixed,
    make_context,
    to_decimal,
)

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    COMPARE_PRECISION,
    CROSS_CHECK_REL_TOL_DEFAULT,
    InvalidArgument,
    agrees_within,
    as_integer,
    is_finite_real,
    relative_difference,
    validate_positive_int,
)

# Bernoulli
from src.core.math.bernoulli import (
    BERNOULLI_MAX_INDEX_DEFAULT,
    BernoulliCache,
    even_zeta_coefficient,
)

__all__ = [
    # Precision — Constants
    "GUARD_DIGITS",
    "OUTPUT_DECIMALS",
    "WORKING_DPS_DEFAULT",
    "WORKING_DPS_MIN",
    # Precision — Functions
    "format_fixed",
    "make_context",
    "to_decimal",
    # Numerical Safeguards — Constants
    "COMPARE_PRECISION",
    "CROSS_CHECK_REL_TOL_DEFAULT",
    # Numerical Safeguards — Exceptions
    "InvalidArgument",
    # Numerical Safeguards — Functions
    "agrees_within",
    "as_integer",
    "is_finite_real",
    "relative_difference",
    "validate_positive_int",
    # Bernoulli
    "BERNOULLI_MAX_INDEX_DEFAULT",
    "BernoulliCache",
    "even_zeta_coefficient",
]
