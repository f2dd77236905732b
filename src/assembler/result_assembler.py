"""
Result Assembler — Оркестрация движков и сборка ZetaResult

Порядок обработки запроса:
1. Валидация n (ZetaRequest) → InvalidArgument до запуска движков (fail fast)
2. SeriesSummationEngine ∥ AnalyticReconstructionEngine (ThreadPoolExecutor)
3. Ожидание обоих с timeout_sec → ComputationTimeout (fatal)
4. Ошибка reconstruction → деградация до series-only результата
5. Cross-check reconstruction vs (series + хвост) с толерантностью
6. Сборка immutable ZetaResult; to_response() → контракт zeta_response

ПОЛИТИКА ОШИБОК:
- InvalidArgument: пробрасывается, вычисления не выполняются
- Любая ошибка reconstruction (ReconstructionUnstable и прочие): деградация
- Любая ошибка series: пробрасывается (series — ground truth без fallback)
- ComputationTimeout: пробрасывается (признак resource starvation)
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Final, Optional

from src.core.domain.zeta import ZETA_N_MAX, ConvergencePoint, CrossCheck, ZetaRequest, ZetaResult
from src.core.math.bernoulli import BernoulliCache
from src.core.math.numerical_safeguards import (
    CROSS_CHECK_REL_TOL_DEFAULT,
    relative_difference,
)
from src.core.math.precision import OUTPUT_DECIMALS, format_fixed
from src.engines.analytic_reconstruction import (
    AnalyticReconstructionEngine,
    ReconstructionConfig,
    ReconstructionResult,
    ReconstructionUnstable,
)
from src.engines.series_summation import (
    EULER_MACLAURIN_MAX_ORDER,
    SeriesSummationConfig,
    SeriesSummationEngine,
    SeriesSummationResult,
)

logger = logging.getLogger(__name__)

# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================

# Таймаут ожидания обоих движков (секунды)
ASSEMBLER_TIMEOUT_SEC_DEFAULT: Final[float] = 60.0

# Формы сериализации convergence_data
TRACE_SHAPE_PAIRS: Final[str] = "pairs"
TRACE_SHAPE_OBJECTS: Final[str] = "objects"

# Формы сериализации чисел
NUMBERS_STRING: Final[str] = "string"
NUMBERS_FLOAT: Final[str] = "float"

# Минимальный max_index общего кэша Бернулли: реконструкция ζ(ZETA_N_MAX)
# использует B_{ZETA_N_MAX+1}, хвост Euler–Maclaurin до B_{2·max_order}
BERNOULLI_INDEX_REQUIRED: Final[int] = max(ZETA_N_MAX + 1, 2 * EULER_MACLAURIN_MAX_ORDER)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ComputationTimeout(RuntimeError):
    """
    Движки не завершились за timeout_sec.

    Все циклы движков имеют фиксированное число итераций, поэтому таймаут
    означает resource starvation: запрос завершается серверной ошибкой.
    """
    pass


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class AssemblerConfig:
    """Конфигурация ResultAssembler."""

    # Относительная толерантность cross-check
    tolerance: Decimal = CROSS_CHECK_REL_TOL_DEFAULT

    # True → движки в ThreadPoolExecutor, False → последовательно в текущем потоке
    parallel: bool = True

    timeout_sec: float = ASSEMBLER_TIMEOUT_SEC_DEFAULT

    def __post_init__(self):
        if not isinstance(self.tolerance, Decimal):
            raise ValueError(
                f"tolerance must be a Decimal, got {type(self.tolerance).__name__}"
            )
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be positive, got {self.timeout_sec}")


# =============================================================================
# RESULT ASSEMBLER
# =============================================================================


class ResultAssembler:
    """
    Оркестратор: валидация → оба движка → cross-check → ZetaResult.

    Движки — независимые чистые вычисления без общего изменяемого состояния,
    кроме общего append-only BernoulliCache, которым владеет assembler.
    """

    def __init__(
        self,
        config: Optional[AssemblerConfig] = None,
        series_engine: Optional[SeriesSummationEngine] = None,
        reconstruction_engine: Optional[AnalyticReconstructionEngine] = None,
        bernoulli_cache: Optional[BernoulliCache] = None,
    ):
        """
        Args:
            config: Конфигурация (default: AssemblerConfig())
            series_engine: Series движок (default: создаётся с общим кэшем)
            reconstruction_engine: Reconstruction движок (default: создаётся с общим кэшем)
            bernoulli_cache: Общий кэш Бернулли (default: новый BernoulliCache)

        Raises:
            ValueError: Если bernoulli_cache.max_index < BERNOULLI_INDEX_REQUIRED
        """
        self.config = config or AssemblerConfig()
        self.bernoulli_cache = bernoulli_cache if bernoulli_cache is not None else BernoulliCache()
        if self.bernoulli_cache.max_index < BERNOULLI_INDEX_REQUIRED:
            raise ValueError(
                f"bernoulli_cache.max_index must be >= {BERNOULLI_INDEX_REQUIRED}, "
                f"got {self.bernoulli_cache.max_index}"
            )
        self.series_engine = series_engine or SeriesSummationEngine(
            SeriesSummationConfig(), self.bernoulli_cache
        )
        self.reconstruction_engine = reconstruction_engine or AnalyticReconstructionEngine(
            ReconstructionConfig(), self.bernoulli_cache
        )

    def assemble(self, n) -> ZetaResult:
        """
        Полное вычисление ζ(n).

        Args:
            n: Сырой аргумент (int, целый float, строка с целым числом)

        Returns:
            ZetaResult (series-only с degraded=True, если reconstruction не удалась)

        Raises:
            InvalidArgument: n не целое, вне [3, 53] или чётное
            ComputationTimeout: движки не уложились в timeout_sec
        """
        request = ZetaRequest.from_raw(n)
        started = time.perf_counter()
        logger.info("zeta(%d): computing", request.n)

        if self.config.parallel:
            series, reconstruction, failure = self._run_parallel(request.n)
        else:
            series = self.series_engine.compute(request.n)
            reconstruction, failure = self._guarded(self.reconstruction_engine.compute, request.n)

        result = self._merge(request, series, reconstruction, failure)

        logger.info(
            "zeta(%d): done in %.3fs, degraded=%s, cross_check=%s",
            request.n,
            time.perf_counter() - started,
            result.degraded,
            None if result.cross_check is None else result.cross_check.agrees,
        )
        return result

    # -------------------------------------------------------------------------
    # Запуск движков
    # -------------------------------------------------------------------------

    def _run_parallel(self, n: int):
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="zeta-engine")
        try:
            series_future: Future = executor.submit(self.series_engine.compute, n)
            reconstruction_future: Future = executor.submit(
                self._guarded, self.reconstruction_engine.compute, n
            )
            deadline = time.monotonic() + self.config.timeout_sec

            try:
                series = series_future.result(timeout=self.config.timeout_sec)
                remaining = max(deadline - time.monotonic(), 0.0)
                reconstruction, failure = reconstruction_future.result(timeout=remaining)
            except FutureTimeoutError as e:
                raise ComputationTimeout(
                    f"zeta({n}) engines did not finish within {self.config.timeout_sec}s"
                ) from e
        finally:
            # Не ждём зависший движок: потоки завершатся сами (циклы конечны)
            executor.shutdown(wait=False, cancel_futures=True)

        return series, reconstruction, failure

    @staticmethod
    def _guarded(
        compute: Callable[[int], ReconstructionResult], n: int
    ) -> tuple[Optional[ReconstructionResult], Optional[str]]:
        """
        Запуск reconstruction с локальным восстановлением.

        Аргумент уже провалидирован ZetaRequest, поэтому любая ошибка здесь,
        включая InvalidArgument изнутри движка (например, индекс Бернулли вне
        кэша), внутренняя: результат деградирует до series-only.

        Returns:
            (result, None) при успехе, (None, reason) при любой ошибке reconstruction
        """
        try:
            return compute(n), None
        except ReconstructionUnstable as e:
            logger.warning("zeta(%d): reconstruction unstable, series-only result: %s", n, e)
            return None, f"reconstruction_unstable: {e}"
        except Exception as e:
            logger.exception("zeta(%d): reconstruction failed, series-only result", n)
            return None, f"reconstruction_failed: {type(e).__name__}: {e}"

    # -------------------------------------------------------------------------
    # Сборка
    # -------------------------------------------------------------------------

    def _merge(
        self,
        request: ZetaRequest,
        series: SeriesSummationResult,
        reconstruction: Optional[ReconstructionResult],
        failure: Optional[str],
    ) -> ZetaResult:
        if reconstruction is None:
            return ZetaResult(
                n=request.n,
                series_value=series.series_value,
                convergence_trace=series.convergence_trace,
                tail_correction=series.tail_correction,
                degraded=True,
                degradation_reason=failure,
            )

        cross_check = self.cross_check(series, reconstruction)
        if not cross_check.agrees:
            logger.warning(
                "zeta(%d): cross-check failed, relative difference %s >= tolerance %s",
                request.n,
                cross_check.relative_difference,
                cross_check.tolerance,
            )

        return ZetaResult(
            n=request.n,
            series_value=series.series_value,
            convergence_trace=series.convergence_trace,
            tail_correction=series.tail_correction,
            symbolic_formula=reconstruction.symbolic_formula,
            reconstructed_value=reconstruction.reconstructed_value,
            components=reconstruction.components,
            cross_check=cross_check,
        )

    def cross_check(
        self,
        series: SeriesSummationResult,
        reconstruction: ReconstructionResult,
    ) -> CrossCheck:
        """
        Сверка reconstructed_value с S_N + хвост.

        Returns:
            CrossCheck(agrees = relative_difference < tolerance)
        """
        diff = relative_difference(series.corrected_value, reconstruction.reconstructed_value)
        return CrossCheck(
            agrees=diff < self.config.tolerance,
            relative_difference=diff,
            tolerance=self.config.tolerance,
        )


# =============================================================================
# RESPONSE CONTRACT
# =============================================================================


def _number(value: Decimal, numbers: str, decimals: int):
    if numbers == NUMBERS_FLOAT:
        return float(value)
    return format_fixed(value, decimals)


def _trace_item(point: ConvergencePoint, trace_shape: str, numbers: str, decimals: int):
    partial_sum = _number(point.partial_sum, numbers, decimals)
    if trace_shape == TRACE_SHAPE_OBJECTS:
        return {"term": point.term, "partialSum": partial_sum}
    return [point.term, partial_sum]


def to_response(
    result: ZetaResult,
    trace_shape: str = TRACE_SHAPE_PAIRS,
    numbers: str = NUMBERS_STRING,
    decimals: int = OUTPUT_DECIMALS,
) -> Dict[str, Any]:
    """
    Сериализация ZetaResult в контракт zeta_response.

    Поля, которые читает клиент: series_value, convergence_data,
    recursion, components.

    Args:
        result: Результат ResultAssembler.assemble
        trace_shape: "pairs" → [term, partialSum], "objects" → {term, partialSum}
        numbers: "string" → фиксированная запись с decimals знаками (без потерь),
                 "float" → JSON number (клиентский Number)
        decimals: Знаков после запятой для numbers="string"

    Returns:
        dict, валидный по contracts/schema/zeta_response.json

    Raises:
        ValueError: Неизвестный trace_shape или numbers
    """
    if trace_shape not in (TRACE_SHAPE_PAIRS, TRACE_SHAPE_OBJECTS):
        raise ValueError(f"unknown trace_shape: {trace_shape!r}")
    if numbers not in (NUMBERS_STRING, NUMBERS_FLOAT):
        raise ValueError(f"unknown numbers format: {numbers!r}")

    cross_check = None
    if result.cross_check is not None:
        cross_check = {
            "agrees": result.cross_check.agrees,
            "relative_difference": str(result.cross_check.relative_difference),
            "tolerance": str(result.cross_check.tolerance),
            "reference": result.cross_check.reference,
        }

    return {
        "n": result.n,
        "series_value": _number(result.series_value, numbers, decimals),
        "convergence_data": [
            _trace_item(point, trace_shape, numbers, decimals)
            for point in result.convergence_trace
        ],
        "recursion": result.symbolic_formula,
        "reconstructed_value": (
            None
            if result.reconstructed_value is None
            else _number(result.reconstructed_value, numbers, decimals)
        ),
        "components": [
            {
                "name": component.name,
                "symbolic": component.symbolic,
                "value": _number(component.value, numbers, decimals),
            }
            for component in result.components
        ],
        "cross_check": cross_check,
        "degraded": result.degraded,
    }
