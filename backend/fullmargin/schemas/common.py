from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from fullmargin.core.clock import as_utc

"""
Schemas communs (Pydantic).

Rôle (fonctionnel) :
- CamelModel : le front parle camelCase (communityId, startsAt, isPublic…),
  le code Python reste en snake_case (alias générés, les deux formes acceptées en entrée).
- Ok[T] : enveloppe de succès {"ok": true, "data": ...}.
- UTCDateTime : datetimes toujours sérialisés avec fuseau (UTC).
- parse_iso_datetime : parse tolérant des dates ISO envoyées par les clients.
"""

T = TypeVar("T")

UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse robuste de datetime ISO pour compat clients variés.

    Accepte :
    - "2026-03-21T18:00:00Z"
    - "2026-03-21T18:00:00.4600072Z" (7 digits -> tronqué à 6)
    - "2026-03-21T18:00:00.460007+01:00"
    Sans fuseau : UTC par défaut.
    """
    s = value.strip()

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    if "." in s:
        head, rest = s.split(".", 1)
        frac, tz = rest, ""
        if "+" in rest:
            frac, tz = rest.split("+", 1)
            tz = "+" + tz
        elif "-" in rest[1:]:
            frac, tz = rest.split("-", 1)
            tz = "-" + tz

        frac_digits = "".join(ch for ch in frac if ch.isdigit())[:6]
        s = f"{head}.{frac_digits}{tz}" if frac_digits else f"{head}{tz}"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def iso_before(v: Any) -> Any:
    """Validateur `mode="before"` : string ISO -> datetime UTC."""
    if isinstance(v, str) and v.strip():
        return parse_iso_datetime(v)
    return v


# Entrée tolérante (ISO “Z”, fractions à 7 digits, sans fuseau = UTC)
ISODateTime = Annotated[datetime, BeforeValidator(iso_before)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class CamelInput(CamelModel):
    """Payload d’entrée : champs inconnus refusés (API contract strict)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class Ok(BaseModel, Generic[T]):
    ok: bool = True
    data: T


class PageMeta(CamelModel):
    page: int
    page_size: int
    total: int
