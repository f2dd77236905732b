"""
Test suite for the odd zeta engine

Contains:
- tests/unit/          : Unit tests for individual modules and the assembler
"""
