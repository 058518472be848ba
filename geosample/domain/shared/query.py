"""Query/handler and service base classes.

Handlers and services declare their collaborators as annotated class
attributes; the metaclass turns every subclass into a dataclass so dishka
can build them from their constructor signature.
"""

from abc import ABCMeta, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, dataclass_transform

from pydantic import BaseModel


class Query(BaseModel): ...


class Result(BaseModel): ...


Q = TypeVar("Q", bound=Query)
R = TypeVar("R")


@dataclass_transform()
class _DataclassMeta(ABCMeta):
    """Metaclass that combines ABC with auto-dataclass for subclasses."""

    def __new__(mcs, name: str, bases: tuple[type, ...], namespace: dict[str, Any]):
        cls = super().__new__(mcs, name, bases, namespace)
        if any(isinstance(b, mcs) for b in bases):
            cls = dataclass(cls)
        return cls


class QueryHandler(Generic[Q, R], metaclass=_DataclassMeta):
    """Base class for query handlers. Subclasses are automatically dataclasses."""

    @abstractmethod
    async def run(self, query: Q) -> R: ...


class Service(metaclass=_DataclassMeta):
    """Base class for domain services. Subclasses are automatically dataclasses."""
