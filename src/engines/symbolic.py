"""
Symbolic — LaTeX-рендеринг формулы реконструкции (sympy)

Формулы собираются как выражения sympy и печатаются через sympy.latex.
Сумма печатается с order="none": порядок слагаемых совпадает с порядком
компонент реконструкции.
"""

from fractions import Fraction

import sympy as sp

# Индекс суммирования корректирующих рядов
K = sp.Symbol("k", integer=True, positive=True)


def rational(value: Fraction) -> sp.Rational:
    """Fraction → sympy Rational (точно)."""
    return sp.Rational(value.numerator, value.denominator)


def pi_power_term(coefficient: Fraction, n: int) -> sp.Expr:
    """coefficient · π^n."""
    return rational(coefficient) * sp.pi**n


def lambert_series(n: int, exponent: Fraction) -> sp.Sum:
    """
    Σ_{k>=1} 1 / (k^n (e^{exponent·π·k} - 1)), без вычисления.

    Для n = 3, exponent = 2 печатается как
    \\sum_{k=1}^{\\infty} \\frac{1}{k^{3} \\left(e^{2 \\pi k} - 1\\right)}
    """
    return sp.Sum(
        1 / (K**n * (sp.exp(rational(exponent) * sp.pi * K) - 1)),
        (K, 1, sp.oo),
    )


def weighted_lambert_series(weight: Fraction, n: int, exponent: Fraction) -> sp.Expr:
    """weight · lambert_series(n, exponent)."""
    return rational(weight) * lambert_series(n, exponent)


def render(expr: sp.Expr) -> str:
    """LaTeX для одного выражения."""
    return sp.latex(expr)


def render_identity(n: int, terms: list[sp.Expr]) -> str:
    """
    LaTeX для тождества ζ(n) = term_1 + term_2 + ...

    Args:
        n: Аргумент ζ
        terms: Слагаемые правой части в порядке вывода

    Returns:
        Строка вида "\\zeta(3) = \\frac{7 \\pi^{3}}{180} - 2 \\sum ..."
    """
    if not terms:
        raise ValueError("terms must not be empty")

    if len(terms) == 1:
        rhs = render(terms[0])
    else:
        rhs = sp.latex(sp.Add(*terms, evaluate=False), order="none")

    return rf"\zeta({n}) = {rhs}"
