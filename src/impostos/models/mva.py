from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from impostos.utils.validators import (
    validate_flag,
    validate_percent,
    validate_product_code,
    validate_uf,
)


@dataclass(frozen=True)
class MvaKey:
    """Lookup key: product NCM (or category code) plus origin and destination UF."""

    product: str
    origin_uf: str
    destination_uf: str

    @classmethod
    def of(cls, product: object, origin_uf: str, destination_uf: str) -> MvaKey:
        """Build a normalized key (NCM without dots, category code and UFs upper-cased)."""
        return cls(
            product=validate_product_code(product),
            origin_uf=validate_uf(origin_uf, "uf_origem"),
            destination_uf=validate_uf(destination_uf, "uf_destino"),
        )


@dataclass(frozen=True)
class MvaTableEntry:
    key: MvaKey
    mva_percent: Decimal
    description: str | None = None
    internal_rate_percent: Decimal | None = None
    subject_to_st: bool = True  # sujeito_st
    active: bool = True  # ativo

    @classmethod
    def from_dict(cls, d: dict) -> MvaTableEntry:
        """Create an entry from the mva.yaml layout.

        ``uf_origem`` defaults to ``uf_destino`` (internal operation).
        """
        destination = d.get("uf_destino") or d["uf"]
        internal = d.get("aliquota_interna")
        return cls(
            key=MvaKey.of(d["ncm"], d.get("uf_origem") or destination, destination),
            mva_percent=validate_percent(d.get("mva", "0"), "mva"),
            description=d.get("descricao"),
            internal_rate_percent=(
                validate_percent(internal, "aliquota_interna") if internal is not None else None
            ),
            subject_to_st=validate_flag(d.get("sujeito_st", True), "sujeito_st"),
            active=validate_flag(d.get("ativo", True), "ativo"),
        )

    def to_dict(self) -> dict:
        d: dict = {
            "ncm": self.key.product,
            "uf_origem": self.key.origin_uf,
            "uf_destino": self.key.destination_uf,
            "mva": str(self.mva_percent),
            "sujeito_st": self.subject_to_st,
            "ativo": self.active,
        }
        if self.description:
            d["descricao"] = self.description
        if self.internal_rate_percent is not None:
            d["aliquota_interna"] = str(self.internal_rate_percent)
        return d
