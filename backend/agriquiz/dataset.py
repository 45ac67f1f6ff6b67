"""Read-only reference dataset: (product, year) -> records."""
from collections import OrderedDict
from typing import Dict, Iterable, List, Tuple

from .models import DatasetRecord, normalize_key


class Dataset:
    """Immutable index over a flat (product, country, year) -> value table.

    Records keep their original order inside each (product, year) slice so
    that ties in rankings resolve by dataset order.
    """

    def __init__(self, records: Iterable[DatasetRecord]):
        self._records: Tuple[DatasetRecord, ...] = tuple(records)
        self._index: Dict[Tuple[str, int], List[DatasetRecord]] = {}
        products: 'OrderedDict[str, str]' = OrderedDict()
        for rec in self._records:
            self._index.setdefault((rec.product_key, rec.year), []).append(rec)
            products.setdefault(rec.product_key, rec.product)
        self._products = tuple(products.values())

    @classmethod
    def from_rows(cls, rows: Iterable[dict]) -> 'Dataset':
        """Build from dicts with Product/Country/Year/Value keys."""
        return cls(
            DatasetRecord(
                product=str(r['Product']).strip(),
                country=str(r['Country']).strip(),
                year=int(r['Year']),
                value=float(r['Value']),
            )
            for r in rows
        )

    def __len__(self) -> int:
        return len(self._records)

    @property
    def products(self) -> Tuple[str, ...]:
        return self._products

    def slice(self, product: str, year: int) -> Tuple[DatasetRecord, ...]:
        return tuple(self._index.get((normalize_key(product), year), ()))

    def countries(self, product: str, year: int) -> List[str]:
        """Distinct countries for (product, year), first occurrence wins."""
        seen = OrderedDict()
        for rec in self.slice(product, year):
            seen.setdefault(rec.country_key, rec.country)
        return list(seen.values())

    def years(self, product: str) -> List[int]:
        key = normalize_key(product)
        return sorted({year for (p, year) in self._index if p == key})
