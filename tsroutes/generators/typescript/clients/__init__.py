"""
TypeScript client generation module.

Main entry point for generating the per-route fetch functions of a client module.
"""

from .fetch import generate_fetch_wrapper
from .utils import CodeBuilder, generate_function_name, to_parameter_name, assign_parameter_names


__all__ = [
    'generate_fetch_wrapper',
    'generate_function_name',
    'to_parameter_name',
    'assign_parameter_names',
    'CodeBuilder',
]
