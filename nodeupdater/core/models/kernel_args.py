"""
Kernel argument requests — add/remove mutations to reconcile.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class KernelArgOperation(StrEnum):
    """What to do with a kernel argument."""

    ADD = "add"
    REMOVE = "remove"


class KernelArgument(BaseModel):
    """A requested kernel argument mutation.

    ``name`` is the raw argument text. It may be a composite of several
    space-separated ``key=value`` tokens (``"cat=kitten puppy=dog"``),
    which is expanded into independent tokens before reconciliation.
    """

    operation: KernelArgOperation
    name: str

    @classmethod
    def add(cls, name: str) -> KernelArgument:
        return cls(operation=KernelArgOperation.ADD, name=name)

    @classmethod
    def remove(cls, name: str) -> KernelArgument:
        return cls(operation=KernelArgOperation.REMOVE, name=name)
