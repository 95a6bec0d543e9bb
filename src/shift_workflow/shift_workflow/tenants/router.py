from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Protocol

from ..core.exceptions import NotFoundError
from .model import TenantStores

logger = logging.getLogger(__name__)


class TenantRouter(Protocol):
    def resolve(self, tenant: str) -> TenantStores:
        raise NotImplementedError

    def exists(self, tenant: str) -> bool:
        raise NotImplementedError

    def teardown(self, tenant: str) -> None:
        raise NotImplementedError


class CachingTenantRouter(TenantRouter):
    """Resolves a tenant (database name) to its stores, building each handle once."""

    def __init__(
        self,
        factory: Callable[[str], TenantStores],
        *,
        probe: Optional[Callable[[str], bool]] = None,
    ):
        self._factory = factory
        self._probe = probe
        self._cache: Dict[str, TenantStores] = {}
        self._lock = threading.Lock()

    def resolve(self, tenant: str) -> TenantStores:
        if not tenant:
            raise NotFoundError("Tenant is required")
        with self._lock:
            stores = self._cache.get(tenant)
            if stores is None:
                if self._probe is not None and not self._probe(tenant):
                    raise NotFoundError(f"Tenant store not found: {tenant}")
                stores = self._factory(tenant)
                self._cache[tenant] = stores
                logger.debug("Tenant handle created for %s", tenant)
            return stores

    def exists(self, tenant: str) -> bool:
        with self._lock:
            if tenant in self._cache:
                return True
        return self._probe(tenant) if self._probe is not None else False

    def teardown(self, tenant: str) -> None:
        with self._lock:
            self._cache.pop(tenant, None)
