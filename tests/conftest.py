from __future__ import annotations

from decimal import Decimal

import pytest

from impostos.config import RateDefaults
from impostos.models.mva import MvaKey, MvaTableEntry
from impostos.models.sale_item import SaleLineItem
from impostos.services.mva_table import MvaTable


def D(value: str) -> Decimal:
    return Decimal(value)


# --- Line items ---


@pytest.fixture
def st_item() -> SaleLineItem:
    """R$ 1000 with MVA 40%, ICMS próprio 4%, internal rate 18%, no IPI."""
    return SaleLineItem(
        net_value=D("1000"),
        mva_percent=D("40"),
        icms_own_rate_percent=D("4"),
        st_internal_rate_percent=D("18"),
        ipi_rate_percent=D("0"),
    )


@pytest.fixture
def ipi_only_item() -> SaleLineItem:
    """R$ 800 with no MVA and IPI 5%."""
    return SaleLineItem(net_value=D("800"), mva_percent=D("0"), ipi_rate_percent=D("5"))


@pytest.fixture
def defaults() -> RateDefaults:
    return RateDefaults()


# --- MVA table ---


@pytest.fixture
def mva_rows() -> list[dict]:
    return [
        {
            "ncm": "2309",
            "uf_origem": "SP",
            "uf_destino": "SP",
            "descricao": "Racoes",
            "mva": "40",
            "aliquota_interna": "18",
        },
        {
            "ncm": "2309",
            "uf_origem": "SP",
            "uf_destino": "RJ",
            "descricao": "Racoes",
            "mva": "83.63",
            "aliquota_interna": "20",
        },
        {
            "ncm": "2309",
            "uf_origem": "SP",
            "uf_destino": "SC",
            "mva": "50",
            "sujeito_st": False,
        },
        {
            "ncm": "4201",
            "uf_origem": "SP",
            "uf_destino": "MG",
            "mva": "30",
            "ativo": False,
        },
    ]


@pytest.fixture
def mva_table(mva_rows: list[dict]) -> MvaTable:
    return MvaTable.from_dicts(mva_rows)


@pytest.fixture
def rj_key() -> MvaKey:
    return MvaKey.of("2309", "SP", "RJ")


@pytest.fixture
def rj_entry(rj_key: MvaKey) -> MvaTableEntry:
    return MvaTableEntry(key=rj_key, mva_percent=D("83.63"), internal_rate_percent=D("20"))


# --- Sales ---


@pytest.fixture
def gross_sale() -> dict:
    """Two gross-priced items with a R$ 10 sale discount."""
    return {
        "uf_origem": "SP",
        "uf_destino": "SP",
        "desconto": "10",
        "itens": [
            {
                "produto_id": 1,
                "produto_nome": "Produto A",
                "preco_unitario": "100",
                "quantidade": 2,
                "ipi": "10",
                "mva": "83.63",
                "icms_proprio": "4",
            },
            {
                "produto_id": 2,
                "produto_nome": "Produto B",
                "preco_unitario": "50",
                "quantidade": 1,
                "ipi": "5",
                "mva": "50",
                "icms_proprio": "4",
            },
        ],
    }
