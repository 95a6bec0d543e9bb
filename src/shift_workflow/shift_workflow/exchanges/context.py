from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Tuple, TypeVar

from ..core.exceptions import NotFoundError
from ..directory.model import Company
from ..directory.repository import DirectoryRepository
from ..tenants.model import TenantStores
from ..tenants.router import TenantRouter

A = TypeVar("A")
B = TypeVar("B")


@dataclass(frozen=True)
class TenantContext:
    company: Company
    stores: TenantStores


def run_pair(first: Callable[[], A], second: Callable[[], B]) -> Tuple[A, B]:
    """Run two independent reads concurrently; the first error wins."""
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="exchange-read") as pool:
        fa = pool.submit(first)
        fb = pool.submit(second)
        return fa.result(), fb.result()


class TenantContextCache:
    """Per-operation map of company id -> (company, tenant stores)."""

    def __init__(self, directory: DirectoryRepository, tenants: TenantRouter):
        self._directory = directory
        self._tenants = tenants
        self._contexts: Dict[int, TenantContext] = {}
        self._lock = threading.Lock()

    def get(self, company_id: int) -> TenantContext:
        key = int(company_id)
        with self._lock:
            cached = self._contexts.get(key)
        if cached:
            return cached

        company = self._directory.get_active_company(key)
        if not company:
            raise NotFoundError(f"Company not found or inactive: {company_id}")
        context = TenantContext(company=company, stores=self._tenants.resolve(company.db_name))
        with self._lock:
            return self._contexts.setdefault(key, context)

    def get_pair(self, first_company_id: int, second_company_id: int) -> Tuple[TenantContext, TenantContext]:
        if int(first_company_id) == int(second_company_id):
            context = self.get(first_company_id)
            return context, context
        return run_pair(lambda: self.get(first_company_id), lambda: self.get(second_company_id))
