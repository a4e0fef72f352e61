"""Explicit transaction handles over the Django ORM.

Services never reach for a module-level connection. They are constructed with
a `RegistryStore` and every write receives the `Transaction` the caller opened,
so the owner of the unit of work is always visible at the call site.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from django.db import DEFAULT_DB_ALIAS, transaction


@dataclass(frozen=True)
class Transaction:
    alias: str

    def objects(self, model):
        return model._default_manager.using(self.alias)

    @contextmanager
    def savepoint(self) -> Iterator["Transaction"]:
        with transaction.atomic(using=self.alias):
            yield self


class RegistryStore:
    def __init__(self, alias: str = DEFAULT_DB_ALIAS):
        self.alias = alias

    @contextmanager
    def atomic(self) -> Iterator[Transaction]:
        with transaction.atomic(using=self.alias):
            yield Transaction(self.alias)

    def reader(self) -> Transaction:
        """Handle for single-statement reads and writes outside a unit of work."""
        return Transaction(self.alias)
