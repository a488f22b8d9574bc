"""
NORMALIZAÇÃO DE TELEFONES
=========================

Os números chegam em vários formatos:
- 5571989170372@s.whatsapp.net (JID do WhatsApp)
- 5571989170372 / 71989170372 (só dígitos, com ou sem DDI)
- (71) 98917-0372 (formatado, como a Tutts e as planilhas usam)
- 7189170372 (celular antigo, sem o 9)

Tudo é comparado pela forma canônica de 11 dígitos (DDD + 9 + número)
e pelas variações geradas aqui.
"""

import re

_NON_DIGITS = re.compile(r"\D")
_DISPLAY_RE = re.compile(r"\((\d{2})\)\s*(\d{4,5})-(\d{4})")

# Primeiro dígito de números que parecem celular (fixos começam com 2-5)
_MOBILE_FIRST_DIGITS = ("6", "7", "8", "9")


def _digits(raw: str | None) -> str:
    return _NON_DIGITS.sub("", raw or "")


def _strip_country_code(digits: str) -> str:
    if len(digits) >= 12 and digits.startswith("55"):
        return digits[2:]
    return digits


def normalize_phone(raw: str | None) -> str:
    """
    Forma canônica: só dígitos, sem o 55, com o 9 do celular.

    '(71) 8917-0372' -> '71989170372'
    """
    digits = _strip_country_code(_digits(raw))

    # Celular antigo (8 dígitos + DDD): insere o 9 depois do DDD
    if len(digits) == 10:
        digits = digits[:2] + "9" + digits[2:]

    return digits


def phone_variants(raw: str | None) -> list[str]:
    """
    Variações usadas para casar o telefone com planilhas e CRM.

    Ordem: canônico, com 55, sem o 9, sem o 9 com 55. Sem repetições.
    """
    normalized = normalize_phone(raw)
    if not normalized:
        return []

    variants = [normalized, "55" + normalized]

    if len(normalized) == 11:
        without_nine = normalized[:2] + normalized[3:]
        variants.append(without_nine)
        variants.append("55" + without_nine)

    return list(dict.fromkeys(variants))


def format_display_phone(raw: str | None) -> str:
    """
    Formato exigido pela API da Tutts: (XX) XXXXX-XXXX ou (XX) XXXX-XXXX.
    """
    if not raw:
        return ""

    digits = _strip_country_code(_digits(raw))

    if len(digits) == 11:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"

    if len(digits) == 10:
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"

    # Alguns cadastros antigos vêm com um dígito sobrando
    if len(digits) == 12:
        return f"({digits[:2]}) {digits[2:7]}-{digits[7:11]}"

    if "(" in raw and ")" in raw:
        return re.sub(r"\s*/\s*$", "", raw).strip()

    return digits


def display_variants(raw: str | None) -> list[str]:
    """
    Variações do telefone formatado para consultar a Tutts.

    (85) 8593-7856  -> [(85) 8593-7856, (85) 98593-7856]
    (85) 98593-7856 -> [(85) 98593-7856, (85) 8593-7856]
    (85) 3257-2058  -> [(85) 3257-2058]  (fixo: não inventa o 9)
    """
    formatted = format_display_phone(raw)
    if not formatted:
        return []

    variants = [formatted]

    match = _DISPLAY_RE.search(formatted)
    if not match:
        return variants

    ddd, part1, part2 = match.groups()

    if len(part1) == 4 and part1[0] in _MOBILE_FIRST_DIGITS:
        variants.append(f"({ddd}) 9{part1}-{part2}")

    if len(part1) == 5 and part1.startswith("9"):
        variants.append(f"({ddd}) {part1[1:]}-{part2}")

    return list(dict.fromkeys(variants))


def area_code(raw: str | None) -> str:
    """DDD do telefone (2 primeiros dígitos da forma canônica)."""
    return normalize_phone(raw)[:2]


def whatsapp_link(raw: str | None) -> str:
    return f"https://wa.me/55{normalize_phone(raw)}"
