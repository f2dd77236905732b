"""
Zeta — Модели запроса и результата вычисления ζ(n)

Immutable Pydantic модели, представляющие:
- ZetaRequest: провалидированный нечётный аргумент n ∈ [3, 53]
- ConvergencePoint: точка трассы сходимости (term, partial_sum)
- FormulaComponent: слагаемое аналитической реконструкции
- CrossCheck: результат сверки series vs reconstruction
- ZetaResult: полный результат, возвращаемый вызывающей стороне

Полная совместимость с JSON Schema (contracts/schema/zeta_response.json)
через src.assembler.result_assembler.to_response.
"""

from decimal import Decimal, localcontext
from typing import Final, Optional

from pydantic import BaseModel, Field, field_validator

from src.core.math.numerical_safeguards import COMPARE_PRECISION, InvalidArgument, as_integer

# =============================================================================
# ДОМЕН АРГУМЕНТА
# =============================================================================

# Допустимый диапазон n (совпадает с ограничением клиента)
ZETA_N_MIN: Final[int] = 3
ZETA_N_MAX: Final[int] = 53


def validate_zeta_argument(raw) -> int:
    """
    Валидация аргумента n: целое, нечётное, в [ZETA_N_MIN, ZETA_N_MAX].

    Порядок проверок: целочисленность → диапазон → чётность.

    Args:
        raw: Исходное значение (int, целый float, строка с целым числом)

    Returns:
        n как int

    Raises:
        InvalidArgument: constraint = "non_integer" | "range" | "parity"

    Examples:
        >>> validate_zeta_argument("5")
        5
        >>> validate_zeta_argument(4)  # doctest: +SKIP
        Traceback (most recent call last):
            ...
        InvalidArgument: n must be odd, got 4
    """
    n = as_integer(raw)
    if n is None:
        raise InvalidArgument(f"n must be an integer, got {raw!r}", constraint="non_integer")

    if n < ZETA_N_MIN or n > ZETA_N_MAX:
        raise InvalidArgument(
            f"n must be between {ZETA_N_MIN} and {ZETA_N_MAX}, got {n}",
            constraint="range",
        )

    if n % 2 == 0:
        raise InvalidArgument(f"n must be odd, got {n}", constraint="parity")

    return n


def check_engine_argument(n: int) -> None:
    """
    Предусловие движков: n — int (не bool), нечётное, n >= ZETA_N_MIN.

    Верхняя граница ZETA_N_MAX — ограничение запроса, а не движков.

    Raises:
        InvalidArgument: constraint = "non_integer" | "range" | "parity"
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidArgument(f"n must be an integer, got {n!r}", constraint="non_integer")
    if n < ZETA_N_MIN:
        raise InvalidArgument(
            f"n must be >= {ZETA_N_MIN} for a convergent odd zeta series, got {n}",
            constraint="range",
        )
    if n % 2 == 0:
        raise InvalidArgument(f"n must be odd, got {n}", constraint="parity")


# =============================================================================
# REQUEST
# =============================================================================


class ZetaRequest(BaseModel):
    """
    Запрос на вычисление ζ(n).

    Immutable модель (frozen=True). Создаётся на каждый вызов.
    Прямое конструирование с некорректным n даёт pydantic.ValidationError;
    from_raw() поднимает InvalidArgument с указанием нарушенного ограничения.
    """

    n: int = Field(..., description="Нечётный аргумент ζ, 3 <= n <= 53")

    model_config = {"frozen": True}

    @field_validator("n", mode="before")
    @classmethod
    def validate_n(cls, v):
        """Проверка целочисленности, диапазона и нечётности."""
        return validate_zeta_argument(v)

    @property
    def m(self) -> int:
        """m в представлении n = 2m + 1."""
        return (self.n - 1) // 2

    @classmethod
    def from_raw(cls, raw) -> "ZetaRequest":
        """
        Создание запроса из сырого значения.

        Raises:
            InvalidArgument: Если raw не проходит validate_zeta_argument
        """
        return cls(n=validate_zeta_argument(raw))


# =============================================================================
# CONVERGENCE TRACE
# =============================================================================


class ConvergencePoint(BaseModel):
    """Точка трассы сходимости: номер слагаемого и частичная сумма S_term."""

    term: int = Field(..., ge=1, description="Номер слагаемого k")
    partial_sum: Decimal = Field(..., gt=0, description="Частичная сумма S_k")

    model_config = {"frozen": True}

    def as_pair(self) -> tuple[int, Decimal]:
        return (self.term, self.partial_sum)


# =============================================================================
# ANALYTIC RECONSTRUCTION
# =============================================================================


class FormulaComponent(BaseModel):
    """
    Слагаемое аналитической реконструкции.

    Порядок компонент совпадает с порядком слагаемых формулы слева направо;
    сумма value всех компонент равна reconstructed_value.
    """

    name: str = Field(..., min_length=1, description="Имя слагаемого")
    symbolic: str = Field(..., min_length=1, description="LaTeX-выражение слагаемого")
    value: Decimal = Field(..., description="Численное значение слагаемого")

    model_config = {"frozen": True}


class CrossCheck(BaseModel):
    """
    Сверка reconstruction с series.

    reference = "series_with_tail": сравнение идёт с частичной суммой
    плюс хвост Euler–Maclaurin (сырая сумма 2000 слагаемых для малых n
    точна лишь до ~N^{1-n}).
    """

    agrees: bool = Field(..., description="relative_difference < tolerance")
    relative_difference: Decimal = Field(..., ge=0)
    tolerance: Decimal = Field(..., gt=0)
    reference: str = Field("series_with_tail", description="С чем сравнивалась реконструкция")

    model_config = {"frozen": True}


# =============================================================================
# RESULT
# =============================================================================


class ZetaResult(BaseModel):
    """
    Полный результат вычисления ζ(n).

    Immutable модель (frozen=True). Содержит:
    - Series-результат (series_value, convergence_trace, tail_correction)
    - Reconstruction-результат (symbolic_formula, reconstructed_value, components)
      или пустые поля при деградации
    - Cross-check флаг
    """

    n: int = Field(..., ge=3, description="Аргумент ζ")

    # Series
    series_value: Decimal = Field(..., ge=1, description="S_termCount")
    convergence_trace: tuple[ConvergencePoint, ...] = Field(..., min_length=1)
    tail_correction: Decimal = Field(..., ge=0, description="Оценка хвоста Euler–Maclaurin")

    # Reconstruction (None / пусто при деградации)
    symbolic_formula: Optional[str] = Field(None, description="LaTeX-формула")
    reconstructed_value: Optional[Decimal] = Field(None)
    components: tuple[FormulaComponent, ...] = Field(default=())

    # Диагностика
    cross_check: Optional[CrossCheck] = Field(None)
    degraded: bool = Field(False, description="True если reconstruction не удалась")
    degradation_reason: Optional[str] = Field(None)

    model_config = {"frozen": True}

    @field_validator("convergence_trace")
    @classmethod
    def validate_trace_order(
        cls, v: tuple[ConvergencePoint, ...]
    ) -> tuple[ConvergencePoint, ...]:
        """Проверка: term строго возрастает, partial_sum не убывает."""
        for prev, cur in zip(v, v[1:]):
            if cur.term <= prev.term:
                raise ValueError(
                    f"convergence_trace terms must increase: {prev.term} -> {cur.term}"
                )
            if cur.partial_sum < prev.partial_sum:
                raise ValueError(
                    f"convergence_trace must be non-decreasing at term {cur.term}"
                )
        return v

    @property
    def corrected_series_value(self) -> Decimal:
        """Частичная сумма плюс хвост (значение, с которым сверяется reconstruction)."""
        with localcontext() as ctx:
            ctx.prec = COMPARE_PRECISION
            return self.series_value + self.tail_correction

    @property
    def has_reconstruction(self) -> bool:
        return self.reconstructed_value is not None
