"""
TESTES - PLANILHAS
==================

Parse do CSV publicado e carga via httpx (MockTransport).
"""

from datetime import date

import httpx
import pytest

from tutts_crm.infrastructure.data_sources import SpreadsheetSnapshotLoader
from tutts_crm.infrastructure.data_sources.spreadsheet_loader import (
    normalize_header,
    parse_csv,
    parse_br_date,
    build_registry,
    build_tag_map,
)
from tests.utils import FakeBackends, REGISTRY_HEADER, REGISTRY_URL, PAID_TRAFFIC_URL, to_csv


# =============================================================================
# TESTE 1: CSV
# =============================================================================

def test_normalize_header():
    assert normalize_header("\ufeffData Ativação") == "data ativacao"
    assert normalize_header(' "Código" ') == "codigo"


def test_parse_csv_with_bom_quotes_and_blank_lines():
    text = '\ufeffCódigo,Nome,Cidade\n123,"Silva, João",salvador\n\n456,Maria\n'
    rows = parse_csv(text)

    assert rows == [
        {"codigo": "123", "nome": "Silva, João", "cidade": "salvador"},
        {"codigo": "456", "nome": "Maria", "cidade": ""},
    ]


def test_parse_csv_empty():
    assert parse_csv("") == []


@pytest.mark.parametrize("value, expected", [
    ("05/03/2026", date(2026, 3, 5)),
    ("05-03-26", date(2026, 3, 5)),
    ("31/02/2026", None),
    ("2026", None),
    ("", None),
    (None, None),
])
def test_parse_br_date(value, expected):
    assert parse_br_date(value) == expected


# =============================================================================
# TESTE 2: REGISTROS TIPADOS
# =============================================================================

def test_build_registry_indexes_by_canonical_phone():
    rows = parse_csv(to_csv(REGISTRY_HEADER, [
        ["123", "João", "(71) 8917-0372", "salvador", "01/10/2026"],
        ["", "Sem código", "", "recife", ""],
        ["", "Só telefone", "(81) 99999-0000", "recife", ""],
    ]))
    registry = build_registry(rows)

    assert len(registry.records) == 2
    record = registry.by_phone["71989170372"]
    assert record.code == "123"
    assert record.region == "SALVADOR"
    assert record.activation_date == date(2026, 10, 1)


def test_registry_lookup_first_variant_wins():
    registry = build_registry(parse_csv(to_csv(REGISTRY_HEADER, [
        ["123", "João", "71989170372", "SALVADOR", ""],
    ])))
    assert registry.lookup(["000", "71989170372"]).name == "João"
    assert registry.lookup(["000"]) is None


def test_build_tag_map():
    rows = parse_csv(to_csv(["Telefone", "TP"], [
        ["(71) 98917-0372", "META-OUT"],
        ["(81) 99999-0000", ""],
    ]))
    assert build_tag_map(rows) == {"71989170372": "META-OUT"}


# =============================================================================
# TESTE 3: LOADER
# =============================================================================

@pytest.mark.asyncio
async def test_loader_fetches_both_sheets():
    backends = FakeBackends(
        registry_csv=to_csv(REGISTRY_HEADER, [["123", "João", "71989170372", "Salvador", "01/10/2026"]]),
        paid_traffic_csv=to_csv(["Telefone", "TP"], [["71989170372", "TP-1"]]),
    )
    async with backends.client() as client:
        loader = SpreadsheetSnapshotLoader(client, REGISTRY_URL, PAID_TRAFFIC_URL)
        registry = await loader.load_registry()
        tags = await loader.load_paid_traffic_tags()

    assert registry.by_phone["71989170372"].region == "SALVADOR"
    assert tags == {"71989170372": "TP-1"}


@pytest.mark.asyncio
async def test_loader_http_error_returns_empty():
    backends = FakeBackends()
    backends.sheet_status = 500
    async with backends.client() as client:
        loader = SpreadsheetSnapshotLoader(client, REGISTRY_URL, PAID_TRAFFIC_URL)
        registry = await loader.load_registry()
        tags = await loader.load_paid_traffic_tags()

    assert registry.records == []
    assert tags == {}


@pytest.mark.asyncio
async def test_loader_network_failure_returns_empty():
    def handler(request):
        raise httpx.ConnectError("sem rede", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        loader = SpreadsheetSnapshotLoader(client, REGISTRY_URL, PAID_TRAFFIC_URL)
        assert (await loader.load_registry()).by_phone == {}


@pytest.mark.asyncio
async def test_loader_without_url_returns_empty():
    async with FakeBackends().client() as client:
        loader = SpreadsheetSnapshotLoader(client, None, None)
        assert (await loader.load_registry()).records == []
        assert await loader.load_paid_traffic_tags() == {}
