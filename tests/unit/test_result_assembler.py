"""
Tests for ResultAssembler

Проверка:
- End-to-end n = 5 (series, reconstruction, cross-check)
- Весь диапазон n: cross-check, убывание, ограниченная стоимость
- Fail fast: InvalidArgument до запуска движков
- Деградация до series-only результата
- ComputationTimeout
- Идемпотентность и эквивалентность parallel / sequential
- Сериализация to_response и контракт zeta_response
"""

import json
import logging
import time
from decimal import Decimal
from fractions import Fraction

import pytest
from jsonschema import ValidationError

from src.assembler import AssemblerConfig, ComputationTimeout, ResultAssembler, to_response
from src.core.contracts import ZetaResponseValidator, validate_zeta_response
from src.core.domain import FormulaComponent
from src.core.math import BernoulliCache, InvalidArgument, format_fixed
from src.engines import (
    LAMBERT_TERMS_MAX,
    AnalyticReconstructionEngine,
    ReconstructionConfig,
    ReconstructionResult,
    SeriesSummationConfig,
    SeriesSummationEngine,
)


# =============================================================================
# STUBS
# =============================================================================


class RecordingEngine:
    """Движок-заглушка: запоминает вызовы, делегирует настоящему движку."""

    def __init__(self, delegate, delay_sec: float = 0.0, error: Exception = None):
        self.delegate = delegate
        self.delay_sec = delay_sec
        self.error = error
        self.calls = []

    def compute(self, n):
        self.calls.append(n)
        if self.delay_sec:
            time.sleep(self.delay_sec)
        if self.error is not None:
            raise self.error
        return self.delegate.compute(n)


class FixedReconstruction:
    """Reconstruction-заглушка с заданным значением."""

    def __init__(self, value: Decimal):
        self.value = value

    def compute(self, n):
        return ReconstructionResult(
            n=n,
            symbolic_formula=rf"\zeta({n}) = x",
            reconstructed_value=self.value,
            components=(FormulaComponent(name="x", symbolic="x", value=self.value),),
            lambert_ratio=Fraction(1),
            lambert_terms=(),
            digits_lost=0.0,
        )


def _fast_series():
    return SeriesSummationEngine(SeriesSummationConfig(term_count=100))


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(scope="module")
def assembler():
    return ResultAssembler()


@pytest.fixture(scope="module")
def zeta5(assembler):
    return assembler.assemble(5)


# =============================================================================
# END-TO-END
# =============================================================================


class TestEndToEnd:
    """Полный путь для n = 5."""

    def test_values(self, zeta5):
        assert zeta5.n == 5
        assert format_fixed(zeta5.series_value, 10) == "1.0369277551"
        assert format_fixed(zeta5.reconstructed_value, 10) == "1.0369277551"

    def test_trace(self, zeta5):
        assert len(zeta5.convergence_trace) == 2000
        assert zeta5.convergence_trace[-1].partial_sum == zeta5.series_value

    def test_cross_check(self, zeta5):
        assert zeta5.degraded is False
        assert zeta5.cross_check is not None
        assert zeta5.cross_check.agrees is True
        assert zeta5.cross_check.relative_difference < Decimal("1e-25")
        assert zeta5.cross_check.reference == "series_with_tail"

    def test_reconstruction(self, zeta5):
        assert zeta5.symbolic_formula.startswith(r"\zeta(5) = ")
        assert len(zeta5.components) == 6
        assert zeta5.has_reconstruction

    def test_shared_bernoulli_cache(self, assembler):
        assert assembler.series_engine.bernoulli_cache is assembler.bernoulli_cache
        assert assembler.reconstruction_engine.bernoulli_cache is assembler.bernoulli_cache

    @pytest.mark.parametrize("n", [3, 53])
    def test_boundaries(self, assembler, n):
        result = assembler.assemble(n)
        assert result.n == n
        assert result.cross_check.agrees is True

    def test_integer_like_input(self, assembler):
        assert assembler.assemble("3").n == 3


# =============================================================================
# FULL DOMAIN
# =============================================================================

ODD_N = list(range(3, 54, 2))


@pytest.fixture(scope="module")
def sweep(assembler):
    """assemble(n) для каждого нечётного n в [3, 53] с временем выполнения."""
    results = {}
    for n in ODD_N:
        started = time.perf_counter()
        result = assembler.assemble(n)
        results[n] = (result, time.perf_counter() - started)
    return results


class TestFullDomain:
    """Весь допустимый диапазон n: cross-check и ограниченная стоимость."""

    @pytest.mark.parametrize("n", ODD_N)
    def test_not_degraded(self, sweep, n):
        result, _ = sweep[n]
        assert result.degraded is False
        assert result.has_reconstruction

    @pytest.mark.parametrize("n", ODD_N)
    def test_cross_check_agrees(self, sweep, n):
        result, _ = sweep[n]
        assert result.cross_check.agrees is True
        assert result.cross_check.relative_difference < Decimal("1e-25")

    @pytest.mark.parametrize("n", ODD_N[1:])
    def test_strictly_decreasing(self, sweep, n):
        previous, _ = sweep[n - 2]
        current, _ = sweep[n]
        assert current.reconstructed_value < previous.reconstructed_value
        assert current.corrected_series_value < previous.corrected_series_value

    @pytest.mark.parametrize("n", ODD_N)
    def test_lambert_terms_bounded(self, assembler, n):
        result = assembler.reconstruction_engine.compute(n)
        assert result.lambert_terms
        assert all(count <= LAMBERT_TERMS_MAX for count in result.lambert_terms)

    @pytest.mark.parametrize("n", ODD_N)
    def test_completes_within_timeout(self, sweep, n):
        _, elapsed = sweep[n]
        assert elapsed < AssemblerConfig().timeout_sec

    def test_series_cost_fixed(self, sweep):
        assert all(len(result.convergence_trace) == 2000 for result, _ in sweep.values())


# =============================================================================
# FAIL FAST
# =============================================================================


class TestInvalidArgument:
    """Валидация до запуска движков."""

    @pytest.mark.parametrize(
        "raw,constraint",
        [
            (2, "range"),
            (4, "parity"),
            (1, "range"),
            (54, "range"),
            (5.5, "non_integer"),
            ("abc", "non_integer"),
        ],
    )
    def test_rejected_without_computation(self, raw, constraint):
        series = RecordingEngine(_fast_series())
        reconstruction = RecordingEngine(AnalyticReconstructionEngine())
        assembler = ResultAssembler(series_engine=series, reconstruction_engine=reconstruction)

        with pytest.raises(InvalidArgument) as exc_info:
            assembler.assemble(raw)

        assert exc_info.value.constraint == constraint
        assert series.calls == []
        assert reconstruction.calls == []


# =============================================================================
# DEGRADATION
# =============================================================================


class TestDegradation:
    """Series-only результат при ошибке reconstruction."""

    def test_unstable_reconstruction(self):
        assembler = ResultAssembler(
            series_engine=_fast_series(),
            reconstruction_engine=AnalyticReconstructionEngine(
                ReconstructionConfig(lambert_ratio=Fraction(1))
            ),
        )
        result = assembler.assemble(5)

        assert result.degraded is True
        assert result.degradation_reason.startswith("reconstruction_unstable")
        assert result.symbolic_formula is None
        assert result.reconstructed_value is None
        assert result.components == ()
        assert result.cross_check is None
        assert len(result.convergence_trace) == 100

    def test_unstable_reconstruction_logged(self, caplog):
        assembler = ResultAssembler(
            config=AssemblerConfig(parallel=False),
            series_engine=_fast_series(),
            reconstruction_engine=AnalyticReconstructionEngine(
                ReconstructionConfig(lambert_ratio=Fraction(1))
            ),
        )
        with caplog.at_level(logging.WARNING, logger="src.assembler.result_assembler"):
            assembler.assemble(5)

        assert "reconstruction unstable" in caplog.text

    def test_arithmetic_error(self):
        reconstruction = RecordingEngine(None, error=ZeroDivisionError("division by zero"))
        assembler = ResultAssembler(series_engine=_fast_series(), reconstruction_engine=reconstruction)
        result = assembler.assemble(3)

        assert result.degraded is True
        assert result.degradation_reason == "reconstruction_failed: ZeroDivisionError: division by zero"

    def test_engine_invalid_argument_degrades(self):
        """InvalidArgument изнутри движка не выдаётся за ошибку входа"""
        assembler = ResultAssembler(
            config=AssemblerConfig(parallel=False),
            series_engine=_fast_series(),
            reconstruction_engine=AnalyticReconstructionEngine(
                bernoulli_cache=BernoulliCache(max_index=40)
            ),
        )
        result = assembler.assemble(53)

        assert result.degraded is True
        assert result.degradation_reason.startswith("reconstruction_failed: InvalidArgument")
        assert result.reconstructed_value is None
        assert result.n == 53

    def test_unexpected_error_degrades(self):
        reconstruction = RecordingEngine(None, error=KeyError("coefficient"))
        assembler = ResultAssembler(series_engine=_fast_series(), reconstruction_engine=reconstruction)
        result = assembler.assemble(3)

        assert result.degraded is True
        assert result.degradation_reason.startswith("reconstruction_failed: KeyError")

    def test_unexpected_error_logged(self, caplog):
        reconstruction = RecordingEngine(None, error=RuntimeError("boom"))
        assembler = ResultAssembler(
            config=AssemblerConfig(parallel=False),
            series_engine=_fast_series(),
            reconstruction_engine=reconstruction,
        )
        with caplog.at_level(logging.ERROR, logger="src.assembler.result_assembler"):
            assembler.assemble(3)

        assert "reconstruction failed" in caplog.text

    @pytest.mark.parametrize("max_index", [40, 53])
    def test_small_shared_cache_rejected(self, max_index):
        with pytest.raises(ValueError, match="max_index"):
            ResultAssembler(bernoulli_cache=BernoulliCache(max_index=max_index))

    def test_minimal_shared_cache_accepted(self):
        assembler = ResultAssembler(bernoulli_cache=BernoulliCache(max_index=54))
        assert assembler.bernoulli_cache.max_index == 54

    def test_series_error_propagates(self):
        series = RecordingEngine(None, error=RuntimeError("series failed"))
        assembler = ResultAssembler(series_engine=series)
        with pytest.raises(RuntimeError, match="series failed"):
            assembler.assemble(3)

    def test_cross_check_disagreement(self):
        """Несовпадение — диагностика, а не деградация"""
        assembler = ResultAssembler(
            series_engine=_fast_series(),
            reconstruction_engine=FixedReconstruction(Decimal("1.1")),
        )
        result = assembler.assemble(3)

        assert result.degraded is False
        assert result.cross_check.agrees is False
        assert result.reconstructed_value == Decimal("1.1")


# =============================================================================
# TIMEOUT
# =============================================================================


class TestTimeout:
    """ComputationTimeout."""

    def test_slow_engine(self):
        series = RecordingEngine(_fast_series(), delay_sec=1.0)
        assembler = ResultAssembler(
            config=AssemblerConfig(timeout_sec=0.05),
            series_engine=series,
        )
        with pytest.raises(ComputationTimeout):
            assembler.assemble(3)

    @pytest.mark.parametrize("kwargs", [{"timeout_sec": 0}, {"tolerance": Decimal(0)}])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            AssemblerConfig(**kwargs)

    def test_tolerance_decimal(self):
        assert AssemblerConfig(tolerance=Decimal("1e-20")).tolerance == Decimal("1e-20")

    @pytest.mark.parametrize("tolerance", ["1e-20", 1e-20])
    def test_tolerance_must_be_decimal(self, tolerance):
        with pytest.raises(ValueError, match="Decimal"):
            AssemblerConfig(tolerance=tolerance)


# =============================================================================
# DETERMINISM
# =============================================================================


class TestDeterminism:
    """Идемпотентность и parallel == sequential."""

    def test_idempotent(self, assembler):
        first = to_response(assembler.assemble(7))
        second = to_response(assembler.assemble(7))
        assert json.dumps(first) == json.dumps(second)

    def test_sequential_matches_parallel(self, assembler, zeta5):
        sequential = ResultAssembler(config=AssemblerConfig(parallel=False))
        assert to_response(sequential.assemble(5)) == to_response(zeta5)


# =============================================================================
# RESPONSE CONTRACT
# =============================================================================


class TestToResponse:
    """Сериализация и JSON Schema контракт."""

    def test_pairs(self, zeta5):
        response = to_response(zeta5)
        validate_zeta_response(response)

        assert response["n"] == 5
        assert response["convergence_data"][0] == [1, "1." + "0" * 45]
        assert len(response["convergence_data"]) == 2000
        assert response["series_value"].startswith("1.0369277551")
        assert len(response["series_value"].split(".")[1]) == 45
        assert response["recursion"] == zeta5.symbolic_formula
        assert response["cross_check"]["agrees"] is True
        assert response["degraded"] is False

    def test_objects(self, zeta5):
        response = to_response(zeta5, trace_shape="objects")
        validate_zeta_response(response)

        assert response["convergence_data"][-1]["term"] == 2000
        assert response["convergence_data"][-1]["partialSum"] == response["series_value"]

    def test_float_numbers(self, zeta5):
        response = to_response(zeta5, numbers="float")
        validate_zeta_response(response)

        assert isinstance(response["series_value"], float)
        assert response["series_value"] == pytest.approx(1.0369277551433699)
        assert all(isinstance(c["value"], float) for c in response["components"])

    def test_components(self, zeta5):
        components = to_response(zeta5)["components"]
        assert [c["name"] for c in components] == [c.name for c in zeta5.components]
        assert all(set(c) == {"name", "symbolic", "value"} for c in components)

    def test_degraded_response(self):
        assembler = ResultAssembler(
            series_engine=_fast_series(),
            reconstruction_engine=AnalyticReconstructionEngine(
                ReconstructionConfig(lambert_ratio=Fraction(1))
            ),
        )
        response = to_response(assembler.assemble(5))
        validate_zeta_response(response)

        assert response["recursion"] is None
        assert response["reconstructed_value"] is None
        assert response["components"] == []
        assert response["cross_check"] is None
        assert response["degraded"] is True

    def test_json_serializable(self, zeta5):
        assert json.loads(json.dumps(to_response(zeta5)))["n"] == 5

    @pytest.mark.parametrize("kwargs", [{"trace_shape": "list"}, {"numbers": "int"}])
    def test_unknown_format(self, zeta5, kwargs):
        with pytest.raises(ValueError):
            to_response(zeta5, **kwargs)


class TestResponseSchema:
    """Нарушения контракта zeta_response."""

    @pytest.fixture
    def response(self, zeta5):
        return to_response(zeta5, trace_shape="objects")

    def test_schema_is_valid(self):
        validator = ZetaResponseValidator()
        assert validator.schema["title"] == "zeta_response"

    def test_missing_required_field(self, response):
        del response["series_value"]
        with pytest.raises(ValidationError):
            validate_zeta_response(response)

    def test_n_out_of_range(self, response):
        response["n"] = 55
        assert not ZetaResponseValidator().is_valid(response)

    def test_non_numeric_string(self, response):
        response["series_value"] = "abc"
        with pytest.raises(ValidationError):
            validate_zeta_response(response)

    def test_term_must_be_positive(self, response):
        response["convergence_data"][0]["term"] = 0
        errors = list(ZetaResponseValidator().iter_errors(response))
        assert errors

    def test_unknown_field(self, response):
        response["extra"] = True
        with pytest.raises(ValidationError):
            validate_zeta_response(response)
