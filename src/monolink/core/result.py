"""
Result Type for resolution steps.

Each lookup the linkers perform against the lockfile or the pnpm store
returns either ``Ok`` with the resolved value or ``Err`` with the
``LinkConsistencyError`` describing what was missing. The caller propagates
the first ``Err`` immediately with ``unwrap()``, so a project is never linked
from partial state.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A resolution step that produced a value."""

    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """
    A resolution step that failed.

    ``error`` is the exception that will abort the linking pass.
    """

    error: E

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]
