"""Discriminated outcome of the asynchronous session operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NETWORK = "network"
    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    NO_DATA = "no_data"
    SERVER = "server"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[Any], Err]


def kind_for_status(status_code: Optional[int]) -> ErrorKind:
    if status_code is None:
        return ErrorKind.NETWORK
    if status_code == 401:
        return ErrorKind.AUTH
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code in (400, 422):
        return ErrorKind.VALIDATION
    return ErrorKind.SERVER
