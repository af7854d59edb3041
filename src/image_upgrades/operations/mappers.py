"""
Error mapping and CLI utilities.

Provides centralized exception-to-exit-code mapping and a CLI command wrapper
to ensure consistent error handling across all Typer commands.
"""
from __future__ import annotations

import typer
from typing import Callable, TypeVar

T = TypeVar('T')

EXIT_CODES = {
    "ValidationError": 2,
    "ValueError": 2,
    "FileNotFoundError": 2,
    "RegistryError": 3,
    "UnresolvableReferenceError": 4,
    "RegistryFailureError": 5,
}


def exit_code_for(exc: BaseException) -> int:
    """
    Map exception to standardized exit code.

    - 0: Success
    - 2: Invalid input (ValidationError, ValueError, missing policy file)
    - 3: Registry/network error or unknown error
    - 4: Current reference has no digest (UnresolvableReferenceError)
    - 5: New tag could not be pinned (RegistryFailureError)
    """
    return EXIT_CODES.get(type(exc).__name__, 3)


def run_and_exit(func: Callable[[], T]) -> T:
    """
    Unified error wrapper for CLI commands.

    Executes the given function and maps any exception to the matching exit
    code using typer.Exit, so commands need no try/except blocks.
    """
    try:
        return func()
    except Exception as e:
        from .printers import print_error
        print_error(e)
        raise typer.Exit(code=exit_code_for(e)) from e
