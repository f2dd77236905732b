"""
Numerical Safeguards — Проверки для high-precision значений

Модуль обеспечивает проверки, общие для всех движков:
- Проверка конечности значений (Decimal, mpf, Fraction, int)
- Относительная разность и сравнение с толерантностью без выхода в float
- Приведение "целочисленных" входов (int, 5.0, "5") к int
- Валидация целочисленных параметров движков

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Сравнения выполняются в Decimal с явной точностью (localcontext)
2. bool никогда не считается целым числом
3. Все операции детерминированы и воспроизводимы
"""

from decimal import Decimal, InvalidOperation, localcontext
from fractions import Fraction
from typing import Final, Optional

import mpmath

# =============================================================================
# ТОЛЕРАНТНОСТИ
# =============================================================================

# Относительная толерантность cross-check между series и reconstruction
CROSS_CHECK_REL_TOL_DEFAULT: Final[Decimal] = Decimal("1e-25")

# Точность Decimal-контекста для сравнений (с запасом над рабочими 60 цифрами)
COMPARE_PRECISION: Final[int] = 80


# =============================================================================
# EXCEPTIONS
# =============================================================================


class InvalidArgument(ValueError):
    """
    Аргумент нарушает предусловие вычисления.

    Атрибут constraint указывает, какое ограничение нарушено:
    - "non_integer": значение не является целым числом
    - "range": значение вне допустимого диапазона
    - "parity": значение чётное там, где требуется нечётное
    - "index": некорректный индекс (например, Bernoulli)

    При возникновении вычисление не выполняется (fail fast, без частичной работы).
    """

    def __init__(self, message: str, constraint: str):
        super().__init__(message)
        self.constraint = constraint


# =============================================================================
# КОНЕЧНОСТЬ
# =============================================================================


def is_finite_real(value) -> bool:
    """
    Проверка, что значение — конечное вещественное число.

    Args:
        value: Decimal, mpf, Fraction или int

    Returns:
        True если значение конечно, False для NaN/Inf и нечисловых типов
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, Fraction)):
        return True
    if isinstance(value, Decimal):
        return value.is_finite()
    # mpf любого контекста (у приватных MPContext свой класс mpf)
    if hasattr(value, "_mpf_"):
        return bool(mpmath.isfinite(value))
    return False


# =============================================================================
# СРАВНЕНИЯ С ТОЛЕРАНТНОСТЬЮ
# =============================================================================


def relative_difference(a: Decimal, b: Decimal) -> Decimal:
    """
    Относительная разность |a - b| / max(|a|, |b|).

    Вычисляется в Decimal с COMPARE_PRECISION цифрами.

    Args:
        a: Первое значение
        b: Второе значение

    Returns:
        Относительная разность (0 если a == b, включая a == b == 0)

    Raises:
        ValueError: Если a или b не конечны

    Examples:
        >>> relative_difference(Decimal("1.0"), Decimal("1.0"))
        Decimal('0')
        >>> relative_difference(Decimal("2"), Decimal("1"))
        Decimal('0.5')
    """
    if not (is_finite_real(a) and is_finite_real(b)):
        raise ValueError(f"values must be finite, got {a!r} and {b!r}")

    with localcontext() as ctx:
        ctx.prec = COMPARE_PRECISION
        diff = abs(a - b)
        if diff == 0:
            return Decimal(0)
        scale = max(abs(a), abs(b))
        return diff / scale


def agrees_within(
    a: Decimal,
    b: Decimal,
    rel_tol: Decimal = CROSS_CHECK_REL_TOL_DEFAULT,
) -> bool:
    """
    Проверка, что a и b совпадают с относительной толерантностью rel_tol.

    Examples:
        >>> agrees_within(Decimal("1.000000000001"), Decimal("1"), Decimal("1e-9"))
        True
        >>> agrees_within(Decimal("1.1"), Decimal("1"), Decimal("1e-9"))
        False
    """
    if rel_tol <= 0:
        raise ValueError(f"rel_tol must be positive, got {rel_tol}")

    return relative_difference(a, b) < rel_tol


# =============================================================================
# ЦЕЛОЧИСЛЕННЫЕ ВХОДЫ
# =============================================================================


def as_integer(value) -> Optional[int]:
    """
    Приведение "целочисленного" значения к int.

    Принимаются: int, целые float/Decimal/Fraction (5.0), строки с целым
    числом ("5", " 7 "). bool отвергается.

    Args:
        value: Исходное значение

    Returns:
        int или None если значение не является целым числом

    Examples:
        >>> as_integer(5)
        5
        >>> as_integer(5.0)
        5
        >>> as_integer("7")
        7
        >>> as_integer(5.5) is None
        True
        >>> as_integer(True) is None
        True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value) if value.is_integer() else None
    if isinstance(value, Fraction):
        return value.numerator if value.denominator == 1 else None
    if isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return as_integer(Decimal(text))
        except InvalidOperation:
            return None
    return None


def validate_positive_int(value: int, name: str, max_value: Optional[int] = None) -> None:
    """
    Валидация, что value — положительное int (не bool) и не превышает max_value.

    Args:
        value: Проверяемое значение
        name: Имя параметра (для сообщения об ошибке)
        max_value: Максимальное допустимое значение (optional)

    Raises:
        ValueError: Если value не int, value < 1 или value > max_value
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")

    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")

    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")
