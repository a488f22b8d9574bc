"""Mapeamento de DDD para a região operacional da Tutts."""

from .phone import area_code

DDD_REGIONS: dict[str, str] = {
    # Nordeste
    "71": "SALVADOR",
    "73": "ILHÉUS",
    "74": "JUAZEIRO",
    "75": "FEIRA DE SANTANA",
    "77": "BARREIRAS",
    "81": "RECIFE",
    "87": "PETROLINA",
    "82": "MACEIÓ",
    "83": "JOÃO PESSOA",
    "84": "NATAL",
    "85": "FORTALEZA",
    "86": "TERESINA",
    "88": "JUAZEIRO DO NORTE",
    "89": "PICOS",
    "79": "ARACAJU",
    "98": "SÃO LUÍS",
    "99": "IMPERATRIZ",
    # Sudeste
    "11": "SÃO PAULO",
    "12": "SÃO JOSÉ DOS CAMPOS",
    "13": "SANTOS",
    "14": "BAURU",
    "15": "SOROCABA",
    "16": "RIBEIRÃO PRETO",
    "17": "SÃO JOSÉ DO RIO PRETO",
    "18": "PRESIDENTE PRUDENTE",
    "19": "CAMPINAS",
    "21": "RIO DE JANEIRO",
    "22": "CAMPOS DOS GOYTACAZES",
    "24": "VOLTA REDONDA",
    "27": "VITÓRIA",
    "28": "CACHOEIRO DE ITAPEMIRIM",
    "31": "BELO HORIZONTE",
    "32": "JUIZ DE FORA",
    "33": "GOVERNADOR VALADARES",
    "34": "UBERLÂNDIA",
    "35": "POÇOS DE CALDAS",
    "37": "DIVINÓPOLIS",
    "38": "MONTES CLAROS",
    # Centro-Oeste
    "61": "BRASÍLIA",
    "62": "GOIÂNIA",
    "63": "PALMAS",
    "64": "RIO VERDE",
    "65": "CUIABÁ",
    "66": "RONDONÓPOLIS",
    "67": "CAMPO GRANDE",
    # Sul
    "41": "CURITIBA",
    "42": "PONTA GROSSA",
    "43": "LONDRINA",
    "44": "MARINGÁ",
    "45": "FOZ DO IGUAÇU",
    "46": "FRANCISCO BELTRÃO",
    "47": "JOINVILLE",
    "48": "FLORIANÓPOLIS",
    "49": "CHAPECÓ",
    "51": "PORTO ALEGRE",
    "53": "PELOTAS",
    "54": "CAXIAS DO SUL",
    "55": "SANTA MARIA",
    # Norte
    "68": "RIO BRANCO",
    "69": "PORTO VELHO",
    "91": "BELÉM",
    "92": "MANAUS",
    "93": "SANTARÉM",
    "94": "MARABÁ",
    "95": "BOA VISTA",
    "96": "MACAPÁ",
    "97": "COARI",
}


def region_for_phone(raw: str | None) -> str:
    """Região pelo DDD; fora da tabela devolve 'DDD xx'."""
    ddd = area_code(raw)
    return DDD_REGIONS.get(ddd, f"DDD {ddd}")


def is_known_region(region: str | None) -> bool:
    return bool(region) and not region.startswith("DDD")
