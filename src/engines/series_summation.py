"""
Series Summation — Прямое суммирование ζ(n) = Σ 1/k^n

Модуль вычисляет частичные суммы ряда для нечётного n >= 3:
- S_k = S_{k-1} + 1/k^n, k = 1..term_count, строго по возрастанию k
- Каждое слагаемое — одно корректно округлённое деление 1 на точное
  целое k^n в приватном mpmath контексте (working_dps цифр)
- Трасса сходимости (k, S_k) для каждого k (или детерминированная выборка)
- Оценка хвоста Σ_{k>N} 1/k^n по формуле Euler–Maclaurin

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. series_value == partial_sum последней точки трассы
2. Трасса: term строго возрастает, partial_sum не убывает
3. Стоимость фиксирована: term_count итераций, порядок хвоста <= max_order
4. Native float не участвует в вычислениях

ФОРМУЛЫ:
    S_N = Σ_{k=1}^{N} k^{-n}

    T_N = Σ_{k>N} k^{-n}
        ≈ N^{1-n}/(n-1) - N^{-n}/2
          + Σ_{j>=1} B_{2j}/(2j)! · n(n+1)...(n+2j-2) · N^{-n-2j+1}

    corrected_value = S_N + T_N   (опорное значение для cross-check)
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from fractions import Fraction
from math import factorial
from typing import Final, Optional

from src.core.domain.zeta import ConvergencePoint, check_engine_argument
from src.core.math.bernoulli import BernoulliCache
from src.core.math.numerical_safeguards import InvalidArgument, validate_positive_int
from src.core.math.precision import WORKING_DPS_DEFAULT, make_context, to_decimal

logger = logging.getLogger(__name__)

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

# Количество слагаемых по умолчанию (длина трассы, которую рисует клиент)
SERIES_TERM_COUNT_DEFAULT: Final[int] = 2000

# Верхняя граница term_count (ограничивает worst-case стоимость запроса)
SERIES_TERM_COUNT_MAX: Final[int] = 100_000

# Максимальный порядок j в хвосте Euler–Maclaurin
EULER_MACLAURIN_MAX_ORDER: Final[int] = 16

# Дополнительные цифры для порога обрыва хвоста
TAIL_THRESHOLD_EXTRA_DIGITS: Final[int] = 5


@dataclass(frozen=True)
class SeriesSummationConfig:
    """Конфигурация SeriesSummationEngine."""

    term_count: int = SERIES_TERM_COUNT_DEFAULT
    max_term_count: int = SERIES_TERM_COUNT_MAX
    working_dps: int = WORKING_DPS_DEFAULT

    # None → каждая точка; иначе не более trace_max_points точек,
    # первая и последняя всегда включены
    trace_max_points: Optional[int] = None

    euler_maclaurin_max_order: int = EULER_MACLAURIN_MAX_ORDER

    def __post_init__(self):
        validate_positive_int(self.max_term_count, "max_term_count")
        validate_positive_int(self.term_count, "term_count", max_value=self.max_term_count)
        validate_positive_int(self.euler_maclaurin_max_order, "euler_maclaurin_max_order")
        if self.trace_max_points is not None:
            validate_positive_int(self.trace_max_points, "trace_max_points")
            if self.trace_max_points < 2:
                raise ValueError(
                    f"trace_max_points must be >= 2, got {self.trace_max_points}"
                )


@dataclass(frozen=True)
class SeriesSummationResult:
    """Результат прямого суммирования."""

    n: int
    term_count: int

    # S_term_count
    series_value: Decimal

    # (k, S_k), index 0 ↔ k = 1
    convergence_trace: tuple[ConvergencePoint, ...]

    # Оценка Σ_{k>N} k^{-n} и S_N + хвост
    tail_correction: Decimal
    corrected_value: Decimal


# =============================================================================
# HELPERS
# =============================================================================


def trace_terms(term_count: int, max_points: Optional[int] = None) -> list[int]:
    """
    Номера слагаемых, попадающих в трассу.

    Args:
        term_count: Общее количество слагаемых N
        max_points: Максимальное количество точек (None → все)

    Returns:
        Возрастающий список номеров, содержит 1 и N

    Examples:
        >>> trace_terms(5)
        [1, 2, 3, 4, 5]
        >>> trace_terms(2000, 3)
        [1, 1000, 2000]
    """
    if max_points is None or max_points >= term_count:
        return list(range(1, term_count + 1))

    span = term_count - 1
    steps = max_points - 1
    return sorted({1 + (i * span) // steps for i in range(max_points)})


def euler_maclaurin_tail(
    n: int,
    term_count: int,
    cache: BernoulliCache,
    dps: int = WORKING_DPS_DEFAULT,
    max_order: int = EULER_MACLAURIN_MAX_ORDER,
) -> Fraction:
    """
    Точная рациональная оценка хвоста Σ_{k>N} k^{-n} (Euler–Maclaurin).

    Ряд асимптотический: суммирование обрывается, когда слагаемое меньше
    10^{-(dps+5)}, либо перестаёт убывать по модулю, либо j > max_order.

    Args:
        n: Показатель (n >= 2)
        term_count: N — количество уже просуммированных слагаемых
        cache: Кэш чисел Бернулли
        dps: Рабочая точность (задаёт порог обрыва)
        max_order: Максимальный порядок j

    Returns:
        Оценка хвоста как Fraction

    Examples:
        >>> euler_maclaurin_tail(3, 1000, BernoulliCache(), max_order=1)
        Fraction(1998001, 4000000000000)
    """
    tail = Fraction(1, (n - 1) * term_count ** (n - 1)) - Fraction(1, 2 * term_count**n)
    threshold = Fraction(1, 10 ** (dps + TAIL_THRESHOLD_EXTRA_DIGITS))

    rising = n  # n(n+1)...(n+2j-2)
    previous: Optional[Fraction] = None

    for j in range(1, max_order + 1):
        if j > 1:
            rising *= (n + 2 * j - 3) * (n + 2 * j - 2)

        term = (
            cache.bernoulli(2 * j)
            * rising
            / (factorial(2 * j) * term_count ** (n + 2 * j - 1))
        )

        # Асимптотический ряд начал расходиться
        if previous is not None and abs(term) >= abs(previous):
            break

        tail += term
        if abs(term) < threshold:
            break
        previous = term

    return tail


# =============================================================================
# SERIES SUMMATION ENGINE
# =============================================================================


class SeriesSummationEngine:
    """
    Прямое суммирование ζ(n) с трассой сходимости.

    Чистая функция над (n, term_count, config): разделяемого изменяемого
    состояния нет, кроме append-only кэша Бернулли. mpmath контекст
    создаётся на каждый вызов compute (функции mpmath временно меняют
    ctx.prec, общий контекст нельзя делить между потоками).
    """

    def __init__(
        self,
        config: Optional[SeriesSummationConfig] = None,
        bernoulli_cache: Optional[BernoulliCache] = None,
    ):
        """
        Args:
            config: Конфигурация (default: SeriesSummationConfig())
            bernoulli_cache: Кэш Бернулли для хвоста (default: новый BernoulliCache)
        """
        self.config = config or SeriesSummationConfig()
        # Пустой кэш falsy (__len__ == 0), поэтому проверка через is None
        self.bernoulli_cache = bernoulli_cache if bernoulli_cache is not None else BernoulliCache()

    def compute(self, n: int, term_count: Optional[int] = None) -> SeriesSummationResult:
        """
        Вычисление S_N, трассы сходимости и хвоста.

        Args:
            n: Нечётное целое >= 3
            term_count: Количество слагаемых (default: config.term_count)

        Returns:
            SeriesSummationResult

        Raises:
            InvalidArgument: Если n не целое, n < 3, n чётное,
                или term_count вне [1, max_term_count]
        """
        check_engine_argument(n)

        if term_count is None:
            term_count = self.config.term_count
        if isinstance(term_count, bool) or not isinstance(term_count, int):
            raise InvalidArgument(
                f"term_count must be an integer, got {term_count!r}",
                constraint="non_integer",
            )
        if term_count < 1 or term_count > self.config.max_term_count:
            raise InvalidArgument(
                f"term_count must be in [1, {self.config.max_term_count}], got {term_count}",
                constraint="range",
            )

        started = time.perf_counter()
        ctx = make_context(self.config.working_dps)

        wanted = trace_terms(term_count, self.config.trace_max_points)
        wanted_iter = iter(wanted)
        next_wanted = next(wanted_iter)

        partial = ctx.mpf(0)
        trace: list[ConvergencePoint] = []

        for k in range(1, term_count + 1):
            # Одно округление: 1 / (точное целое k^n)
            partial += ctx.fdiv(1, k**n)

            if k == next_wanted:
                trace.append(ConvergencePoint(term=k, partial_sum=to_decimal(ctx, partial)))
                next_wanted = next(wanted_iter, 0)

        tail = euler_maclaurin_tail(
            n,
            term_count,
            self.bernoulli_cache,
            dps=self.config.working_dps,
            max_order=self.config.euler_maclaurin_max_order,
        )
        tail_value = ctx.fdiv(tail.numerator, tail.denominator)
        corrected = partial + tail_value

        logger.debug(
            "series n=%d terms=%d trace_points=%d elapsed=%.3fs",
            n,
            term_count,
            len(trace),
            time.perf_counter() - started,
        )

        return SeriesSummationResult(
            n=n,
            term_count=term_count,
            series_value=trace[-1].partial_sum,
            convergence_trace=tuple(trace),
            tail_correction=to_decimal(ctx, tail_value),
            corrected_value=to_decimal(ctx, corrected),
        )
