"""
Result Assembler

Оркестрация движков, cross-check и сериализация ответа.
"""

from src.assembler.result_assembler import (
    AssemblerConfig,
    ComputationTimeout,
    ResultAssembler,
    to_response,
)

__all__ = [
    "AssemblerConfig",
    "ComputationTimeout",
    "ResultAssembler",
    "to_response",
]
