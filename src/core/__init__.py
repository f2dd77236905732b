"""
Core domain models, mathematical primitives, and invariants.

This module contains the foundational building blocks of the odd zeta
engine: precision contexts, Bernoulli numbers, request/result models and
response contracts.
"""
