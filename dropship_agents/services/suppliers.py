"""Supplier catalog registry used by the product scout."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from dropship_agents.agents.payloads import simulate_call
from dropship_agents.core.market import ScoutedProduct
from dropship_agents.core.models import new_id

_NAME_TEMPLATES = (
    "Premium {q}",
    "{q} Pro Version",
    "Wireless {q}",
    "Smart {q}",
    "Portable {q}",
    "{q} Set",
    "Upgraded {q}",
    "Mini {q}",
    "Professional {q}",
    "{q} Bundle",
)


@dataclass(slots=True)
class SupplierCatalog:
    """A supplier endpoint searched by keyword.

    ``search`` simulates the remote catalog; a real connector replaces it
    with an HTTP call and keeps the same signature.
    """

    name: str
    endpoint: str
    latency: tuple = (0.8, 1.6)

    async def search(
        self,
        query: str,
        count: int,
        rng: random.Random,
        latency_scale: float = 1.0,
    ) -> List[ScoutedProduct]:
        await simulate_call(rng, *self.latency, scale=latency_scale)
        names = [template.format(q=query) for template in _NAME_TEMPLATES]
        rng.shuffle(names)
        slug = self.name.lower().replace(" ", "-")
        return [self._product(slug, title, index, rng) for index, title in enumerate(names[:count])]

    def _product(self, slug: str, title: str, index: int, rng: random.Random) -> ScoutedProduct:
        cost_price = float(rng.randint(5, 34))
        suggested_price = float(int(cost_price * (2 + rng.random())))
        return ScoutedProduct(
            id=new_id(slug),
            title=title,
            description=f"High-quality {title.lower()} - perfect for dropshipping. Fast shipping available.",
            source_url=f"{self.endpoint.rstrip('/')}/product/{index}",
            supplier=self.name,
            cost_price=cost_price,
            suggested_price=suggested_price,
            profit_margin=round((suggested_price - cost_price) / suggested_price * 100),
            rating=4 + rng.random(),
            reviews=rng.randint(100, 5099),
            sold=rng.randint(500, 10499),
            shipping_time=f"{rng.randint(7, 16)}-{rng.randint(15, 24)} days",
            competitor_count=rng.randint(5, 54),
        )


class SupplierRegistry:
    """Registry maintaining supplier catalogs by name."""

    def __init__(self) -> None:
        self._suppliers: Dict[str, SupplierCatalog] = {}

    def register(self, supplier: SupplierCatalog) -> None:
        self._suppliers[supplier.name] = supplier

    def get(self, name: str) -> SupplierCatalog:
        if name not in self._suppliers:
            raise KeyError(f"No supplier registered with name: {name}")
        return self._suppliers[name]

    def find_by_url(self, url: str) -> Optional[SupplierCatalog]:
        lowered = url.lower()
        for supplier in self._suppliers.values():
            host = supplier.endpoint.lower().split("://", 1)[-1].split("/", 1)[0]
            if host and host in lowered:
                return supplier
        return None

    def all(self) -> List[SupplierCatalog]:
        return list(self._suppliers.values())

    def __len__(self) -> int:
        return len(self._suppliers)


def default_suppliers() -> SupplierRegistry:
    registry = SupplierRegistry()
    registry.register(SupplierCatalog(name="CJ Dropshipping", endpoint="https://cjdropshipping.com"))
    registry.register(SupplierCatalog(name="AliExpress", endpoint="https://aliexpress.com"))
    return registry
