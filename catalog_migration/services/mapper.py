"""
Field mapping from legacy rows to target records.

Every loosely typed legacy column passes through exactly one coercion
function here. Mapping functions are pure: they never touch a store.
"""

import logging
import numbers
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Tuple

from dateutil import parser as date_parser

from ..errors import InvalidFieldError, MappingError, RequiredFieldError
from ..models.entities import (
    ContentBlockRecord,
    EntityKind,
    HostingRecord,
    ReferenceRecord,
    TariffPeriod,
    TariffRecord,
)
from .slugs import generate_slug

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

KEY_FORMAT = re.compile(r'^[a-z][a-z0-9_]*[a-z0-9]$|^[a-z]$')

YEAR_PERIODS = {"year", "год"}

TARIFF_INFO_FIELDS = (
    "info_disk_area",
    "info_platforms",
    "info_panels",
    "info_price",
    "info_ozu",
    "info_cpu",
    "info_cpu_core",
    "info_domains",
)

# Unix timestamps below this are seconds, otherwise milliseconds
_MILLISECONDS_THRESHOLD = 10_000_000_000

REFERENCE_LABELS = {
    EntityKind.CMS: "CMS",
    EntityKind.CONTROL_PANEL: "ControlPanel",
    EntityKind.COUNTRY: "Country",
    EntityKind.DATA_STORE: "DataStore",
    EntityKind.OPERATION_SYSTEM: "OperationSystem",
    EntityKind.PROGRAMMING_LANGUAGE: "ProgrammingLanguage",
}


# ---------------------------------------------------------------------------
# Coercions
# ---------------------------------------------------------------------------

def to_boolean(value: Any) -> bool:
    """
    Coerce a legacy flag.

    ``None`` is false, booleans pass through, the integer ``1`` is true and
    anything else is false.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, numbers.Number):
        return value == 1
    return False


def to_optional_boolean(value: Any) -> Optional[bool]:
    """Like ``to_boolean`` but NULL stays NULL."""
    if value is None:
        return None
    return to_boolean(value)


def to_datetime(value: Any, entity: str = "", field: str = "date") -> datetime:
    """
    Coerce a legacy timestamp.

    Missing or falsy values become the current time. ``datetime`` objects
    pass through. Numbers are Unix timestamps in seconds or milliseconds.
    Strings are parsed with dateutil.
    """
    if not value:
        return datetime.utcnow()
    if isinstance(value, datetime):
        return value
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        seconds = value if value < _MILLISECONDS_THRESHOLD else value / 1000
        return datetime.utcfromtimestamp(float(seconds))
    try:
        return date_parser.parse(str(value))
    except (ValueError, OverflowError) as e:
        raise InvalidFieldError(
            f"{entity} {field} is not a valid date: {value!r}".strip(),
            entity=entity,
            field=field,
        ) from e


def to_decimal(value: Any, entity: str = "", field: str = "price") -> Optional[Decimal]:
    """
    Parse a numeric or numeric-string value.

    Returns None for NULL or blank input.

    Raises:
        InvalidFieldError: If the value is not a number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation as e:
            raise InvalidFieldError(
                f"{entity} {field} must be a number", entity=entity, field=field
            ) from e
    if not parsed.is_finite():
        raise InvalidFieldError(f"{entity} {field} must be a number", entity=entity, field=field)
    return parsed


def to_price(value: Any, entity: str = "Tariff") -> Decimal:
    """
    Coerce a required, strictly positive price.

    Raises:
        RequiredFieldError: If no value is present
        InvalidFieldError: If the value is not a number or not positive
    """
    price = to_decimal(value, entity, "price")
    if price is None:
        raise RequiredFieldError(entity, "price")
    if price <= 0:
        raise InvalidFieldError(
            f"{entity} price must be greater than 0", entity=entity, field="price"
        )
    return price


def _lenient_decimal(value: Any) -> Optional[Decimal]:
    """Secondary price columns: unusable values are dropped instead of failing."""
    try:
        parsed = to_decimal(value)
    except InvalidFieldError:
        return None
    if parsed is None or parsed < 0:
        return None
    return parsed


def to_tariff_period(value: str) -> TariffPeriod:
    """
    Resolve a legacy period string.

    ``year`` and ``год`` (any case) are YEAR. Any other value is MONTH.
    """
    normalized = str(value).strip().lower()
    if normalized in YEAR_PERIODS:
        return TariffPeriod.YEAR
    if normalized != "month":
        logger.warning(f"Unrecognized tariff period {value!r}, defaulting to MONTH")
    return TariffPeriod.MONTH


def _text(value: Any) -> Optional[str]:
    """Trimmed string, or None when blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _present(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def _require_name(row: Row, entity: str) -> str:
    name = _text(row.get("name"))
    if not name:
        raise RequiredFieldError(entity, "name")
    return name


# ---------------------------------------------------------------------------
# Content block keys
# ---------------------------------------------------------------------------

def generate_key_from_title(title: Optional[str]) -> str:
    """
    Derive a snake_case key from a title.

    Raises:
        MappingError: If the title is empty or yields an empty key
    """
    if not title:
        raise MappingError("Cannot generate key: title is required", "ContentBlock", "title")

    key = generate_slug(title).replace("-", "_")
    key = re.sub(r'[^a-z0-9_]', '', key)
    key = re.sub(r'_+', '_', key)
    key = key.strip("_")

    if not key:
        raise InvalidFieldError(
            "Cannot generate key: title resulted in empty key",
            entity="ContentBlock",
            field="key",
        )
    return key


def validate_key_format(key: str) -> bool:
    """Check that ``key`` is snake_case without leading or trailing underscores."""
    return bool(KEY_FORMAT.match(key))


# ---------------------------------------------------------------------------
# Entity mappers
# ---------------------------------------------------------------------------

def map_hosting(row: Row) -> HostingRecord:
    """
    Map a legacy hosting row.

    A non-blank legacy slug is kept verbatim, dots included, so domain-shaped
    slugs such as ``sub.example.com`` survive. Otherwise the slug is derived
    from the name. ``website_url`` always equals the slug.
    """
    name = _require_name(row, "Hosting")

    slug = _text(row.get("slug")) or generate_slug(name)
    if not slug:
        raise InvalidFieldError(
            f"Hosting slug could not be generated from name {name!r}",
            entity="Hosting",
            field="slug",
        )

    status = row.get("status")
    if status is not None:
        is_active = status == 1 and not isinstance(status, bool)
    else:
        is_active = to_boolean(row.get("is_active"))

    return HostingRecord(
        name=name,
        slug=slug,
        website_url=slug,
        description=_text(row.get("description")),
        logo_url=_text(row.get("logo_url")),
        start_year=_text(row.get("start_year")),
        test_period=_int(row.get("test_period")),
        clients=_int(row.get("clients")),
        is_active=is_active,
        created_at=to_datetime(row.get("created_at"), "Hosting", "created_at"),
        updated_at=to_datetime(row.get("updated_at"), "Hosting", "updated_at"),
        legacy_id=row.get("id"),
    )


def _nonzero_price(value: Any) -> bool:
    try:
        parsed = to_decimal(value)
    except InvalidFieldError:
        return True
    return parsed is not None and parsed != 0


def _resolve_period_and_price(row: Row) -> Tuple[TariffPeriod, Any]:
    price_month = row.get("price_month")
    price_year = row.get("price_year")

    if _present(price_month):
        period, period_price = TariffPeriod.MONTH, price_month
    elif _present(price_year):
        period, period_price = TariffPeriod.YEAR, price_year
    else:
        period_text = _text(row.get("period"))
        if not period_text:
            raise RequiredFieldError("Tariff", "period")
        return to_tariff_period(period_text), row.get("price")

    # A zero per-period price falls back to the legacy price column
    if _nonzero_price(period_price) or not _present(row.get("price")):
        return period, period_price
    return period, row.get("price")


def map_tariff(row: Row, hosting_id: Optional[str] = None) -> TariffRecord:
    """
    Map a legacy tariff row.

    Period comes from whichever of ``price_month`` / ``price_year`` is set,
    falling back to the ``period`` column. Price comes from the matching
    per-period column, falling back to ``price``.

    Args:
        row: Legacy tariff row
        hosting_id: Target identifier of the owning hosting, if resolved

    Returns:
        TariffRecord
    """
    name = _require_name(row, "Tariff")
    period, raw_price = _resolve_period_and_price(row)
    price = to_price(raw_price, "Tariff")

    is_active = row.get("is_active")

    return TariffRecord(
        name=name,
        price=price,
        period=period,
        currency=_text(row.get("currency")) or "RUB",
        legacy_hosting_id=row.get("hosting_id"),
        hosting_id=hosting_id,
        subtitle=_text(row.get("subtitle")),
        link=_text(row.get("link")),
        disk_space=_int(row.get("disk_space")),
        bandwidth=_int(row.get("bandwidth")),
        domains_count=_int(row.get("domains_count")),
        databases_count=_int(row.get("databases_count")),
        email_accounts=_int(row.get("email_accounts")),
        ssl=to_optional_boolean(row.get("ssl")),
        backup=to_optional_boolean(row.get("backup")),
        ssh=to_optional_boolean(row.get("ssh")),
        ddos_def=to_optional_boolean(row.get("ddos_def")),
        antivirus=to_optional_boolean(row.get("antivirus")),
        price_month=_lenient_decimal(row.get("price_month")),
        price_year=_lenient_decimal(row.get("price_year")),
        count_test_days=_int(row.get("count_test_days")),
        type=_int(row.get("type")),
        domains=_int(row.get("domains")),
        sites=_int(row.get("sites")),
        ftp_accounts=_int(row.get("ftp_accounts")),
        traffic=_int(row.get("traffic")),
        mailboxes=_int(row.get("mailboxes")),
        count_db=_int(row.get("count_db")),
        disk_type=_text(row.get("disk_type")),
        automatic_cms=to_optional_boolean(row.get("automatic_cms")),
        additional_id=to_optional_boolean(row.get("additional_id")),
        is_template=to_optional_boolean(row.get("is_template")),
        **{name: _text(row.get(name)) for name in TARIFF_INFO_FIELDS},
        is_active=to_boolean(1 if is_active is None else is_active),
        created_at=to_datetime(row.get("created_at"), "Tariff", "created_at"),
        updated_at=to_datetime(row.get("updated_at"), "Tariff", "updated_at"),
        legacy_id=row.get("id"),
    )


def map_reference(kind: EntityKind, row: Row) -> ReferenceRecord:
    """Map a taxonomy row (CMS, control panel, country, ...)."""
    label = REFERENCE_LABELS[kind]
    name = _require_name(row, label)
    slug = generate_slug(name)
    if not slug:
        raise InvalidFieldError(
            f"{label} slug could not be generated from name {name!r}",
            entity=label,
            field="slug",
        )
    return ReferenceRecord(kind=kind, name=name, slug=slug, legacy_id=row.get("id"))


def _reference_mapper(kind: EntityKind) -> Callable[[Row], ReferenceRecord]:
    def mapper(row: Row) -> ReferenceRecord:
        return map_reference(kind, row)

    mapper.__name__ = f"map_{kind.name.lower()}"
    mapper.__doc__ = f"Map a legacy {REFERENCE_LABELS[kind]} row."
    return mapper


map_cms = _reference_mapper(EntityKind.CMS)
map_control_panel = _reference_mapper(EntityKind.CONTROL_PANEL)
map_country = _reference_mapper(EntityKind.COUNTRY)
map_data_store = _reference_mapper(EntityKind.DATA_STORE)
map_operation_system = _reference_mapper(EntityKind.OPERATION_SYSTEM)
map_programming_language = _reference_mapper(EntityKind.PROGRAMMING_LANGUAGE)


def map_content_block(row: Row) -> ContentBlockRecord:
    """
    Map a legacy content block row.

    A missing key is derived from the title. The final key must be
    snake_case.

    Raises:
        RequiredFieldError: If both key and title are absent
        InvalidFieldError: If the key is malformed or cannot be derived
    """
    key = _text(row.get("key"))
    title = _text(row.get("title"))

    if not key:
        if not title:
            raise MappingError(
                "ContentBlock key or title is required to generate key",
                entity="ContentBlock",
                field="key",
            )
        key = generate_key_from_title(title)

    if not validate_key_format(key):
        raise InvalidFieldError(
            f"ContentBlock key must be in snake_case format: {key}",
            entity="ContentBlock",
            field="key",
        )

    block_type = row.get("type")
    if isinstance(block_type, str):
        block_type = block_type.strip() or None
    elif block_type is not None:
        block_type = str(block_type)

    return ContentBlockRecord(
        key=key,
        title=title,
        content=_text(row.get("content")),
        type=block_type,
        legacy_hosting_id=row.get("hosting_id"),
        is_active=to_boolean(row.get("is_active")),
        created_at=to_datetime(row.get("created_at"), "ContentBlock", "created_at"),
        updated_at=to_datetime(row.get("updated_at"), "ContentBlock", "updated_at"),
        legacy_id=row.get("id"),
    )
