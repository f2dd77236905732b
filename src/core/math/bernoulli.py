"""
Bernoulli — Точные числа Бернулли с мемоизацией

Модуль обеспечивает:
- Точные B_n как fractions.Fraction (алгоритм Akiyama–Tanigawa)
- Инкрементальное расширение кэша: рабочая строка алгоритма сохраняется,
  поэтому расширение с индекса i до j стоит только новых строк
- Потокобезопасную вставку (Lock), чтение без блокировки
- Коэффициенты формулы Эйлера ζ(2m) = r · π^{2m}

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Конвенция B_1 = -1/2
2. B_n = Fraction(0) точно для нечётных n > 1
3. Кэш append-only: однажды вычисленное значение не меняется
4. Индекс ограничен max_index (конечный worst-case cost)

ФОРМУЛЫ:
    Akiyama–Tanigawa:
        A[m] = 1/(m+1)
        A[j-1] = j * (A[j-1] - A[j]),  j = m..1
        B_m = A[0]  (конвенция B_1 = +1/2, знак B_1 исправляется)

    Euler:
        ζ(2m) = (-1)^{m+1} B_{2m} (2π)^{2m} / (2 (2m)!)
"""

import threading
from fractions import Fraction
from math import factorial
from typing import Final

from src.core.math.numerical_safeguards import InvalidArgument

# =============================================================================
# ПАРАМЕТРЫ КЭША
# =============================================================================

# Максимальный индекс по умолчанию.
# Reconstruction для n <= 53 требует индексы до n + 1 = 54,
# хвост Euler–Maclaurin: до 2 * EULER_MACLAURIN_MAX_ORDER.
BERNOULLI_MAX_INDEX_DEFAULT: Final[int] = 128


# =============================================================================
# BERNOULLI CACHE
# =============================================================================


class BernoulliCache:
    """
    Мемоизированные точные числа Бернулли.

    Явный объект (а не глобальный singleton): владелец — движок или
    ResultAssembler, тесты могут подставить свежий экземпляр.

    Examples:
        >>> cache = BernoulliCache()
        >>> cache.bernoulli(1)
        Fraction(-1, 2)
        >>> cache.bernoulli(12)
        Fraction(-691, 2730)
    """

    def __init__(self, max_index: int = BERNOULLI_MAX_INDEX_DEFAULT):
        """
        Args:
            max_index: Максимальный допустимый индекс (ограничение кэша)
        """
        if isinstance(max_index, bool) or not isinstance(max_index, int) or max_index < 1:
            raise ValueError(f"max_index must be a positive integer, got {max_index!r}")

        self.max_index = max_index
        self._values: list[Fraction] = []
        self._row: list[Fraction] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        """Количество уже вычисленных значений (B_0..B_{len-1})."""
        return len(self._values)

    def __call__(self, index: int) -> Fraction:
        return self.bernoulli(index)

    def bernoulli(self, index: int) -> Fraction:
        """
        Точное число Бернулли B_index.

        Args:
            index: Неотрицательный индекс <= max_index

        Returns:
            B_index как Fraction (B_1 = -1/2, нечётные > 1 — точный ноль)

        Raises:
            InvalidArgument: Если index не int, отрицательный или > max_index
        """
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidArgument(
                f"Bernoulli index must be an integer, got {index!r}",
                constraint="non_integer",
            )
        if index < 0 or index > self.max_index:
            raise InvalidArgument(
                f"Bernoulli index must be in [0, {self.max_index}], got {index}",
                constraint="index",
            )

        # Быстрый путь без блокировки: список только растёт
        if index < len(self._values):
            return self._values[index]

        with self._lock:
            self._extend_to(index)

        return self._values[index]

    def _extend_to(self, index: int) -> None:
        """Расширение кэша до index включительно (вызывается под self._lock)."""
        row = self._row
        for m in range(len(self._values), index + 1):
            row.append(Fraction(1, m + 1))
            for j in range(m, 0, -1):
                row[j - 1] = j * (row[j - 1] - row[j])

            value = row[0]
            if m == 1:
                value = -value
            elif m > 1 and m % 2 == 1:
                value = Fraction(0)

            self._values.append(value)


# =============================================================================
# EVEN ZETA (EULER)
# =============================================================================


def even_zeta_coefficient(m: int, cache: BernoulliCache) -> Fraction:
    """
    Рациональный коэффициент r в ζ(2m) = r · π^{2m}.

    Args:
        m: Положительное целое
        cache: Кэш чисел Бернулли

    Returns:
        (-1)^{m+1} B_{2m} 2^{2m} / (2 (2m)!)

    Examples:
        >>> even_zeta_coefficient(1, BernoulliCache())
        Fraction(1, 6)
        >>> even_zeta_coefficient(2, BernoulliCache())
        Fraction(1, 90)
    """
    if isinstance(m, bool) or not isinstance(m, int) or m < 1:
        raise InvalidArgument(f"m must be a positive integer, got {m!r}", constraint="range")

    sign = 1 if m % 2 == 1 else -1
    return sign * cache.bernoulli(2 * m) * Fraction(2 ** (2 * m), 2 * factorial(2 * m))
