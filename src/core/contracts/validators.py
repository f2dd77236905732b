"""
JSON Schema Contract Validators

Модуль для валидации ответа движка ζ(n) согласно формальному JSON Schema
контракту. Использует библиотеку jsonschema (Draft 2020-12).

Схемы:
- zeta_response.json — результат src.assembler.result_assembler.to_response
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator, ValidationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Находит схемы в contracts/schema/ относительно корня проекта.
    """

    def __init__(self):
        # Корень проекта: 4 уровня вверх от этого файла
        self._schema_dir = Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла (с кэшированием).

        Args:
            schema_name: Имя схемы без расширения (например, 'zeta_response')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Валидация данных против одной JSON Schema."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        return self.validator.iter_errors(data)


class ZetaResponseValidator(ContractValidator):
    """
    Валидатор контракта zeta_response.

    Допускает обе формы convergence_data ([term, partialSum] и
    {term, partialSum}) и обе формы чисел (строка с фиксированной
    точкой или JSON number).

    Поверх схемы проверяет инварианты трассы, которые JSON Schema
    не выражает:
    - term строго возрастает
    - partialSum не убывает
    - последний partialSum == series_value
    """

    def __init__(self):
        super().__init__("zeta_response")

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Нарушение схемы или инварианта трассы
        """
        super().validate(data)
        for error in self._trace_errors(data):
            raise error

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return super().is_valid(data) and next(self._trace_errors(data), None) is None

    def iter_errors(self, data: Dict[str, Any]):
        # Инварианты трассы проверяются только на структурно валидных данных
        schema_errors = list(super().iter_errors(data))
        if schema_errors:
            return iter(schema_errors)
        return self._trace_errors(data)

    @staticmethod
    def _trace_errors(data: Dict[str, Any]) -> Iterator[ValidationError]:
        points = [
            (item[0], item[1]) if isinstance(item, list) else (item["term"], item["partialSum"])
            for item in data["convergence_data"]
        ]

        for (prev_term, prev_sum), (term, partial_sum) in zip(points, points[1:]):
            if term <= prev_term:
                yield ValidationError(
                    f"convergence_data terms must increase: {prev_term} -> {term}"
                )
            elif Decimal(str(partial_sum)) < Decimal(str(prev_sum)):
                yield ValidationError(
                    f"convergence_data must be non-decreasing at term {term}"
                )

        last_sum = points[-1][1]
        if Decimal(str(last_sum)) != Decimal(str(data["series_value"])):
            yield ValidationError(
                f"last partialSum {last_sum} does not match series_value {data['series_value']}"
            )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_zeta_response(data: Dict[str, Any]) -> None:
    """
    Валидация ответа to_response().

    Raises:
        jsonschema.ValidationError: Если данные не соответствуют схеме
    """
    ZetaResponseValidator().validate(data)
