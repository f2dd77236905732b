"""
Precision — Рабочая точность и граница mpmath/Decimal

Модуль фиксирует числовую модель движка:
- Внутри движков все вещественные значения — mpmath mpf в приватном
  MPContext (у каждого движка свой контекст, глобальный mp.dps не меняется)
- На границе движка значения конвертируются в decimal.Decimal
  со всеми рабочими цифрами (без промежуточного округления до float)
- Для отображения Decimal форматируется в фиксированную запись
  с OUTPUT_DECIMALS знаками после запятой

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Native float никогда не участвует в вычислении выводимых цифр
2. WORKING_DPS_DEFAULT >= OUTPUT_DECIMALS + GUARD_DIGITS
3. Конверсия mpf → Decimal детерминирована (одинаковый вход → одинаковая строка)
"""

from decimal import Decimal
from typing import Final

import mpmath

# =============================================================================
# ПАРАМЕТРЫ ТОЧНОСТИ
# =============================================================================

# Количество знаков после запятой, с которым клиент отображает значения
OUTPUT_DECIMALS: Final[int] = 45

# Защитные цифры сверх выводимых (ошибки округления 2000 сложений, обусловленность)
GUARD_DIGITS: Final[int] = 15

# Рабочая точность движков по умолчанию (десятичные значащие цифры)
WORKING_DPS_DEFAULT: Final[int] = OUTPUT_DECIMALS + GUARD_DIGITS

# Нижняя граница рабочей точности: меньше нельзя без потери выводимых цифр
WORKING_DPS_MIN: Final[int] = OUTPUT_DECIMALS + 5


# =============================================================================
# КОНТЕКСТЫ
# =============================================================================


def make_context(dps: int = WORKING_DPS_DEFAULT) -> mpmath.MPContext:
    """
    Создание приватного mpmath контекста с заданной точностью.

    Приватный контекст не разделяет точность с глобальным mpmath.mp,
    поэтому два движка с разными dps могут работать в соседних потоках.

    Args:
        dps: Рабочая точность (десятичные значащие цифры)

    Returns:
        Новый MPContext с ctx.dps == dps

    Raises:
        ValueError: Если dps < WORKING_DPS_MIN
    """
    if dps < WORKING_DPS_MIN:
        raise ValueError(f"dps must be >= {WORKING_DPS_MIN}, got {dps}")

    ctx = mpmath.MPContext()
    ctx.dps = dps
    return ctx


# =============================================================================
# КОНВЕРСИЯ И ФОРМАТИРОВАНИЕ
# =============================================================================


def to_decimal(ctx: mpmath.MPContext, value) -> Decimal:
    """
    Конверсия mpf → Decimal со всеми рабочими цифрами контекста.

    Args:
        ctx: Контекст, в котором было вычислено значение
        value: mpf (или любое значение, конвертируемое контекстом)

    Returns:
        Decimal с ctx.dps значащими цифрами

    Examples:
        >>> ctx = make_context(60)
        >>> to_decimal(ctx, ctx.mpf(1))
        Decimal('1.0')
    """
    return Decimal(ctx.nstr(ctx.convert(value), ctx.dps))


def format_fixed(value: Decimal, decimals: int = OUTPUT_DECIMALS) -> str:
    """
    Фиксированная запись Decimal с заданным числом знаков после запятой.

    Округление ROUND_HALF_EVEN (поведение Decimal.__format__).

    Examples:
        >>> format_fixed(Decimal("1.5"), 3)
        '1.500'
        >>> format_fixed(Decimal("1.0E-3"), 5)
        '0.00100'
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")

    return format(value, f".{decimals}f")
