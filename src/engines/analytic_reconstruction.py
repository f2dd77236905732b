"""
Analytic Reconstruction — ζ(2m+1) через числа Бернулли и π

Модуль реконструирует нечётное значение ζ по формуле Рамануджана
(Ramanujan's Notebooks, Part II, Entry 21(i)): π^{2m+1} с рациональным
коэффициентом из произведений чисел Бернулли (соседние чётные значения
ζ(2j)ζ(2m+2-2j) по формуле Эйлера) плюс быстро сходящиеся
корректирующие ряды Ламберта.

ТОЖДЕСТВО (α, β > 0, αβ = π², m >= 1):
    α^{-m} (½ζ(2m+1) + L(α)) = (-β)^{-m} (½ζ(2m+1) + L(β))
        - 2^{2m} Σ_{j=0}^{m+1} (-1)^j B_{2j} B_{2m+2-2j} / ((2j)! (2m+2-2j)!) α^{m+1-j} β^j

    L(x) = Σ_{k>=1} k^{-(2m+1)} / (e^{2xk} - 1)

РЕШЕНИЕ ОТНОСИТЕЛЬНО ζ (α = aπ, β = π/a, c = (-1)^m, d = a^{-m} - c·a^m):
    ζ(2m+1) = Σ_j q_j π^{2m+1} + w_β L(π/a) + w_α L(aπ)

    q_j = -2 · 4^m (-1)^j B_{2j} B_{2m+2-2j} a^{m+1-2j} / ((2j)! (2m+2-2j)! d)
    w_β = 2c·a^m / d
    w_α = -2a^{-m} / d

    a = 1, m нечётное:  ζ(3) = 7π³/180 - 2 Σ 1/(k³ (e^{2πk} - 1))
    a = 1, m чётное:    d = 0, тождество вырождается → ReconstructionUnstable

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Все коэффициенты — точные Fraction; округляется только π^n и ряды
2. Сумма value компонент == reconstructed_value
3. Детерминизм: одинаковые (n, config) → одинаковые формула, компоненты, значение
4. Потеря цифр на сокращении > working_dps - output_decimals → ReconstructionUnstable
"""

import logging
import math
import time
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from math import factorial
from typing import Final, Optional

from src.core.domain.zeta import FormulaComponent, check_engine_argument
from src.core.math.bernoulli import BernoulliCache
from src.core.math.numerical_safeguards import validate_positive_int
from src.core.math.precision import (
    OUTPUT_DECIMALS,
    WORKING_DPS_DEFAULT,
    make_context,
    to_decimal,
)
from src.engines import symbolic

logger = logging.getLogger(__name__)

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

# Lambert ratio a по умолчанию: a = 1 для нечётного m (классическая форма),
# a = 2 для чётного m (при a = 1 тождество вырождается)
LAMBERT_RATIO_ODD_M: Final[Fraction] = Fraction(1)
LAMBERT_RATIO_EVEN_M: Final[Fraction] = Fraction(2)

# Защитные цифры при выборе длины корректирующего ряда
LAMBERT_GUARD_DIGITS: Final[int] = 10

# Максимальная длина корректирующего ряда
LAMBERT_TERMS_MAX: Final[int] = 5000


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ReconstructionUnstable(ArithmeticError):
    """
    Тождество не может гарантировать точность для данного n и конфигурации.

    Причины:
    - d = 0: тождество вырождается (a = 1 при чётном m)
    - корректирующий ряд требует больше max_lambert_terms слагаемых
    - сокращение слагаемых съедает больше working_dps - output_decimals цифр

    При возникновении ResultAssembler деградирует до series-only результата.
    """
    pass


# =============================================================================
# CONFIG / RESULT
# =============================================================================


@dataclass(frozen=True)
class ReconstructionConfig:
    """Конфигурация AnalyticReconstructionEngine."""

    working_dps: int = WORKING_DPS_DEFAULT
    output_decimals: int = OUTPUT_DECIMALS

    # None → LAMBERT_RATIO_ODD_M / LAMBERT_RATIO_EVEN_M по чётности m
    lambert_ratio: Optional[Fraction] = None

    max_lambert_terms: int = LAMBERT_TERMS_MAX

    def __post_init__(self):
        validate_positive_int(self.working_dps, "working_dps")
        validate_positive_int(self.output_decimals, "output_decimals")
        validate_positive_int(self.max_lambert_terms, "max_lambert_terms")
        if self.working_dps <= self.output_decimals:
            raise ValueError(
                f"working_dps {self.working_dps} must be > output_decimals {self.output_decimals}"
            )
        if self.lambert_ratio is not None:
            if not isinstance(self.lambert_ratio, Fraction):
                raise ValueError(
                    f"lambert_ratio must be a Fraction, got {type(self.lambert_ratio).__name__}"
                )
            if self.lambert_ratio <= 0:
                raise ValueError(f"lambert_ratio must be positive, got {self.lambert_ratio}")


@dataclass(frozen=True)
class CorrectionSeries:
    """w · Σ_{k>=1} k^{-n} / (e^{exponent·π·k} - 1)."""

    weight: Fraction
    exponent: Fraction


@dataclass(frozen=True)
class IdentityCoefficients:
    """Точные коэффициенты тождества для (m, a)."""

    m: int
    lambert_ratio: Fraction
    denominator: Fraction

    # (j, q_j): вклад q_j π^{2m+1} произведения B_{2j} B_{2m+2-2j}
    bernoulli_terms: tuple[tuple[int, Fraction], ...]

    series: tuple[CorrectionSeries, ...]

    @property
    def closed_form(self) -> Fraction:
        """Σ_j q_j — рациональный коэффициент при π^{2m+1}."""
        return sum((q for _, q in self.bernoulli_terms), Fraction(0))


@dataclass(frozen=True)
class ReconstructionResult:
    """Результат аналитической реконструкции."""

    n: int
    symbolic_formula: str
    reconstructed_value: Decimal
    components: tuple[FormulaComponent, ...]

    # Диагностика
    lambert_ratio: Fraction
    lambert_terms: tuple[int, ...]
    digits_lost: float


# =============================================================================
# КОЭФФИЦИЕНТЫ
# =============================================================================


def default_lambert_ratio(m: int) -> Fraction:
    """Lambert ratio a по умолчанию для n = 2m + 1."""
    return LAMBERT_RATIO_ODD_M if m % 2 == 1 else LAMBERT_RATIO_EVEN_M


def ramanujan_coefficients(
    m: int,
    lambert_ratio: Fraction,
    cache: BernoulliCache,
) -> IdentityCoefficients:
    """
    Точные коэффициенты тождества Рамануджана для ζ(2m+1) при α = aπ, β = π/a.

    Args:
        m: n = 2m + 1, m >= 1
        lambert_ratio: a > 0
        cache: Кэш чисел Бернулли (индексы до 2m + 2)

    Returns:
        IdentityCoefficients

    Raises:
        ReconstructionUnstable: Если d = a^{-m} - (-1)^m a^m = 0

    Examples:
        >>> coeffs = ramanujan_coefficients(1, Fraction(1), BernoulliCache())
        >>> coeffs.closed_form
        Fraction(7, 180)
        >>> [(s.weight, s.exponent) for s in coeffs.series]
        [(Fraction(-2, 1), Fraction(2, 1))]
    """
    a = Fraction(lambert_ratio)
    c = -1 if m % 2 == 1 else 1
    d = a ** (-m) - c * a**m

    if d == 0:
        raise ReconstructionUnstable(
            f"Ramanujan identity degenerates for m={m}, lambert_ratio={a}: "
            f"a^-m - (-1)^m a^m = 0"
        )

    bernoulli_terms = []
    for j in range(m + 2):
        product = cache.bernoulli(2 * j) * cache.bernoulli(2 * m + 2 - 2 * j)
        sign = 1 if j % 2 == 0 else -1
        q = (
            -2
            * 4**m
            * sign
            * product
            * a ** (m + 1 - 2 * j)
            / (factorial(2 * j) * factorial(2 * m + 2 - 2 * j) * d)
        )
        bernoulli_terms.append((j, q))

    # e^{2βk} = e^{(2/a)πk}, e^{2αk} = e^{2aπk}
    w_beta = 2 * c * a**m / d
    w_alpha = -2 * a ** (-m) / d

    if a == 1:
        series = (CorrectionSeries(weight=w_alpha + w_beta, exponent=Fraction(2)),)
    else:
        series = (
            CorrectionSeries(weight=w_beta, exponent=2 / a),
            CorrectionSeries(weight=w_alpha, exponent=2 * a),
        )

    return IdentityCoefficients(
        m=m,
        lambert_ratio=a,
        denominator=d,
        bernoulli_terms=tuple(bernoulli_terms),
        series=series,
    )


def lambert_term_count(exponent: Fraction, dps: int) -> int:
    """
    Количество слагаемых ряда Σ k^{-n}/(e^{exponent·π·k} - 1) для dps цифр.

    Хвост после K слагаемых ~ e^{-exponent·π·K}; float используется только
    для подсчёта K, не для значений.

    Examples:
        >>> lambert_term_count(Fraction(2), 60)
        26
    """
    digits = dps + LAMBERT_GUARD_DIGITS
    return math.ceil(digits * math.log(10) / (float(exponent) * math.pi))


def _exponent_label(exponent: Fraction) -> str:
    """Fraction(2) → "2π", Fraction(1) → "π", Fraction(1, 2) → "π/2"."""
    numerator = "" if exponent.numerator == 1 else str(exponent.numerator)
    label = f"{numerator}π"
    if exponent.denominator != 1:
        label += f"/{exponent.denominator}"
    return label


# =============================================================================
# ANALYTIC RECONSTRUCTION ENGINE
# =============================================================================


class AnalyticReconstructionEngine:
    """
    Аналитическая реконструкция ζ(2m+1).

    Порядок:
    1. Точные коэффициенты тождества (Fraction)
    2. Численные значения компонент в приватном mpmath контексте
    3. Проверка обусловленности (потеря цифр на сокращении)
    4. LaTeX-формула (sympy) и разложение на компоненты
    """

    def __init__(
        self,
        config: Optional[ReconstructionConfig] = None,
        bernoulli_cache: Optional[BernoulliCache] = None,
    ):
        """
        Args:
            config: Конфигурация (default: ReconstructionConfig())
            bernoulli_cache: Кэш Бернулли (default: новый BernoulliCache)
        """
        self.config = config or ReconstructionConfig()
        self.bernoulli_cache = bernoulli_cache if bernoulli_cache is not None else BernoulliCache()

    def lambert_ratio_for(self, m: int) -> Fraction:
        if self.config.lambert_ratio is not None:
            return self.config.lambert_ratio
        return default_lambert_ratio(m)

    def compute(self, n: int) -> ReconstructionResult:
        """
        Реконструкция ζ(n), n = 2m + 1.

        Args:
            n: Нечётное целое >= 3

        Returns:
            ReconstructionResult

        Raises:
            InvalidArgument: Если n не целое, n < 3 или n чётное
            ReconstructionUnstable: Если тождество вырождено или плохо обусловлено
        """
        check_engine_argument(n)
        started = time.perf_counter()

        m = (n - 1) // 2
        coeffs = ramanujan_coefficients(m, self.lambert_ratio_for(m), self.bernoulli_cache)

        term_counts = tuple(
            lambert_term_count(s.exponent, self.config.working_dps) for s in coeffs.series
        )
        for s, count in zip(coeffs.series, term_counts):
            if count > self.config.max_lambert_terms:
                raise ReconstructionUnstable(
                    f"correction series e^({_exponent_label(s.exponent)}k) needs {count} terms, "
                    f"max_lambert_terms={self.config.max_lambert_terms}"
                )

        ctx = make_context(self.config.working_dps)
        pi_n = ctx.pi**n

        names: list[str] = []
        symbols: list[str] = []
        values = []

        for j, q in coeffs.bernoulli_terms:
            names.append(f"B_{2 * j}·B_{2 * m + 2 - 2 * j} term")
            symbols.append(symbolic.render(symbolic.pi_power_term(q, n)))
            values.append(ctx.fdiv(q.numerator, q.denominator) * pi_n)

        for s, count in zip(coeffs.series, term_counts):
            names.append(f"correction series e^({_exponent_label(s.exponent)}k)")
            symbols.append(
                symbolic.render(symbolic.weighted_lambert_series(s.weight, n, s.exponent))
            )
            series_sum = self._lambert_sum(ctx, n, s.exponent, count)
            values.append(ctx.fdiv(s.weight.numerator, s.weight.denominator) * series_sum)

        total = ctx.fsum(values)
        digits_lost = self._check_conditioning(ctx, n, values, total)

        formula = symbolic.render_identity(
            n,
            [symbolic.pi_power_term(coeffs.closed_form, n)]
            + [symbolic.weighted_lambert_series(s.weight, n, s.exponent) for s in coeffs.series],
        )

        components = tuple(
            FormulaComponent(name=name, symbolic=sym, value=to_decimal(ctx, value))
            for name, sym, value in zip(names, symbols, values)
        )

        logger.debug(
            "reconstruction n=%d ratio=%s series_terms=%s digits_lost=%.2f elapsed=%.3fs",
            n,
            coeffs.lambert_ratio,
            term_counts,
            digits_lost,
            time.perf_counter() - started,
        )

        return ReconstructionResult(
            n=n,
            symbolic_formula=formula,
            reconstructed_value=to_decimal(ctx, total),
            components=components,
            lambert_ratio=coeffs.lambert_ratio,
            lambert_terms=term_counts,
            digits_lost=digits_lost,
        )

    @staticmethod
    def _lambert_sum(ctx, n: int, exponent: Fraction, count: int):
        """Σ_{k=1}^{count} 1 / (k^n (e^{exponent·π·k} - 1)) в контексте ctx."""
        x = ctx.fdiv(exponent.numerator, exponent.denominator) * ctx.pi
        total = ctx.mpf(0)
        for k in range(1, count + 1):
            total += ctx.fdiv(1, k**n) / ctx.expm1(x * k)
        return total

    def _check_conditioning(self, ctx, n: int, values: list, total) -> float:
        """
        Потеря цифр на сокращении: log10(Σ|v_i| / |Σ v_i|).

        Raises:
            ReconstructionUnstable: Если потеря > working_dps - output_decimals
        """
        if total == 0:
            raise ReconstructionUnstable(f"reconstruction of zeta({n}) cancelled to zero")

        magnitude = ctx.fsum(abs(v) for v in values)
        digits_lost = float(ctx.log10(magnitude / abs(total)))
        allowance = self.config.working_dps - self.config.output_decimals

        if digits_lost > allowance:
            raise ReconstructionUnstable(
                f"reconstruction of zeta({n}) loses {digits_lost:.1f} digits to cancellation, "
                f"allowance is {allowance}"
            )

        return digits_lost
