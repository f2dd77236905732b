"""
Вычислительные движки ζ(n)

- series_summation: прямое суммирование Σ 1/k^n с трассой сходимости
- analytic_reconstruction: тождество Рамануджана через B_{2j} и π
- symbolic: LaTeX-рендеринг формул (sympy)
"""

from src.engines.analytic_reconstruction import (
    LAMBERT_TERMS_MAX,
    AnalyticReconstructionEngine,
    ReconstructionConfig,
    ReconstructionResult,
    ReconstructionUnstable,
    ramanujan_coefficients,
)
from src.engines.series_summation import (
    SeriesSummationConfig,
    SeriesSummationEngine,
    SeriesSummationResult,
    euler_maclaurin_tail,
    trace_terms,
)

__all__ = [
    # Series summation
    "SeriesSummationConfig",
    "SeriesSummationEngine",
    "SeriesSummationResult",
    "euler_maclaurin_tail",
    "trace_terms",
    # Analytic reconstruction
    "AnalyticReconstructionEngine",
    "ReconstructionConfig",
    "ReconstructionResult",
    "ReconstructionUnstable",
    "ramanujan_coefficients",
    "LAMBERT_TERMS_MAX",
]
