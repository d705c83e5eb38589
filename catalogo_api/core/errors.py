"""
Domain errors and the translation of SQL Server failures into them.

Handlers never look at driver exceptions: the storage adapter passes every
SQLAlchemy/DBAPI failure through `classify_error()` and the application maps
the resulting `CatalogoError` to a JSON response (see `catalogo_api.main`).
"""

from __future__ import annotations

import re
from typing import Optional

from sqlalchemy.exc import DBAPIError

# SQL Server: 2627 = violación de UNIQUE/PRIMARY KEY, 2601 = índice único
UNIQUE_VIOLATION_NUMBERS = frozenset({2627, 2601})

# pyodbc appends the native error number before the ODBC function name:
#   "... The duplicate key value is (ABC). (2627) (SQLExecDirectW)"
_NATIVE_NUMBER_RE = re.compile(r"\((\d+)\)\s*\(SQL\w+\)")


class CatalogoError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CatalogoError):
    """Missing or malformed request input, detected before touching the DB."""

    status_code = 400


class ConstraintViolation(CatalogoError):
    """Uniqueness violation reported by the storage engine."""

    status_code = 400

    def __init__(self, message: str, number: Optional[int] = None) -> None:
        super().__init__(message)
        self.number = number


class StorageError(CatalogoError):
    status_code = 500


class DatabaseConnectionError(StorageError):
    """The pool could not open its first connection."""


def _driver_error(exc: BaseException) -> BaseException:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return exc.orig
    return exc


def engine_error_number(exc: BaseException) -> Optional[int]:
    """
    Return the SQL Server native error number carried by *exc*, if any.

    Drivers differ: some expose it as `number` (tedious style) or as the first
    argument (pymssql); pyodbc only has it inside the message text.
    """
    orig = _driver_error(exc)

    number = getattr(orig, "number", None)
    if isinstance(number, int):
        return number

    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int) and not isinstance(args[0], bool):
        return args[0]

    text = error_message(orig)
    match = _NATIVE_NUMBER_RE.search(text)
    if match:
        return int(match.group(1))
    return None


def error_message(exc: BaseException) -> str:
    """Raw engine message, without SQLAlchemy's statement/parameters suffix."""
    orig = _driver_error(exc)
    args = getattr(orig, "args", ())
    # pyodbc: ('23000', '[23000] [Microsoft]...')
    if len(args) >= 2 and isinstance(args[1], str):
        return args[1]
    return str(orig) or orig.__class__.__name__


def classify_error(exc: BaseException) -> CatalogoError:
    if isinstance(exc, CatalogoError):
        return exc

    message = error_message(exc)
    number = engine_error_number(exc)
    if number in UNIQUE_VIOLATION_NUMBERS:
        return ConstraintViolation(message, number=number)
    return StorageError(message)
