"""Target-shaped records produced by the field mapper."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class EntityKind(str, Enum):
    """Kinds of entity tracked in the ID mapping registry."""
    CMS = "cms"
    CONTROL_PANEL = "control_panels"
    COUNTRY = "countries"
    DATA_STORE = "data_stores"
    OPERATION_SYSTEM = "operation_systems"
    PROGRAMMING_LANGUAGE = "programming_languages"
    HOSTING = "hostings"
    TARIFF = "tariffs"
    CONTENT_BLOCK = "content_blocks"


REFERENCE_KINDS = (
    EntityKind.CMS,
    EntityKind.CONTROL_PANEL,
    EntityKind.COUNTRY,
    EntityKind.DATA_STORE,
    EntityKind.OPERATION_SYSTEM,
    EntityKind.PROGRAMMING_LANGUAGE,
)


class TariffPeriod(str, Enum):
    """Billing period of a tariff."""
    MONTH = "MONTH"
    YEAR = "YEAR"


@dataclass
class ReferenceRecord:
    """A taxonomy entry (CMS, control panel, country, ...)."""
    kind: EntityKind
    name: str
    slug: str
    legacy_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "slug": self.slug,
            "legacy_id": self.legacy_id,
        }


@dataclass
class HostingRecord:
    """A hosting provider."""
    name: str
    slug: str
    website_url: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    start_year: Optional[str] = None
    test_period: Optional[int] = None
    clients: Optional[int] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "slug": self.slug,
            "website_url": self.website_url,
            "description": self.description,
            "logo_url": self.logo_url,
            "start_year": self.start_year,
            "test_period": self.test_period,
            "clients": self.clients,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "legacy_id": self.legacy_id,
        }


@dataclass
class TariffRecord:
    """A tariff plan belonging to a hosting."""
    name: str
    price: Decimal
    period: TariffPeriod
    currency: str = "RUB"
    legacy_hosting_id: Optional[int] = None
    hosting_id: Optional[str] = None
    subtitle: Optional[str] = None
    link: Optional[str] = None
    disk_space: Optional[int] = None
    bandwidth: Optional[int] = None
    domains_count: Optional[int] = None
    databases_count: Optional[int] = None
    email_accounts: Optional[int] = None
    ssl: Optional[bool] = None
    backup: Optional[bool] = None
    ssh: Optional[bool] = None
    ddos_def: Optional[bool] = None
    antivirus: Optional[bool] = None
    price_month: Optional[Decimal] = None
    price_year: Optional[Decimal] = None
    count_test_days: Optional[int] = None
    type: Optional[int] = None
    domains: Optional[int] = None
    sites: Optional[int] = None
    ftp_accounts: Optional[int] = None
    traffic: Optional[int] = None
    mailboxes: Optional[int] = None
    count_db: Optional[int] = None
    disk_type: Optional[str] = None
    automatic_cms: Optional[bool] = None
    additional_id: Optional[bool] = None
    is_template: Optional[bool] = None
    # Free-text "info" columns shown on tariff cards
    info_disk_area: Optional[str] = None
    info_platforms: Optional[str] = None
    info_panels: Optional[str] = None
    info_price: Optional[str] = None
    info_ozu: Optional[str] = None
    info_cpu: Optional[str] = None
    info_cpu_core: Optional[str] = None
    info_domains: Optional[str] = None
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "price": str(self.price),
            "period": self.period.value,
            "currency": self.currency,
            "legacy_hosting_id": self.legacy_hosting_id,
            "hosting_id": self.hosting_id,
            "subtitle": self.subtitle,
            "link": self.link,
            "disk_space": self.disk_space,
            "bandwidth": self.bandwidth,
            "domains_count": self.domains_count,
            "databases_count": self.databases_count,
            "email_accounts": self.email_accounts,
            "ssl": self.ssl,
            "backup": self.backup,
            "ssh": self.ssh,
            "ddos_def": self.ddos_def,
            "antivirus": self.antivirus,
            "price_month": str(self.price_month) if self.price_month is not None else None,
            "price_year": str(self.price_year) if self.price_year is not None else None,
            "count_test_days": self.count_test_days,
            "type": self.type,
            "domains": self.domains,
            "sites": self.sites,
            "ftp_accounts": self.ftp_accounts,
            "traffic": self.traffic,
            "mailboxes": self.mailboxes,
            "count_db": self.count_db,
            "disk_type": self.disk_type,
            "automatic_cms": self.automatic_cms,
            "additional_id": self.additional_id,
            "is_template": self.is_template,
            "info_disk_area": self.info_disk_area,
            "info_platforms": self.info_platforms,
            "info_panels": self.info_panels,
            "info_price": self.info_price,
            "info_ozu": self.info_ozu,
            "info_cpu": self.info_cpu,
            "info_cpu_core": self.info_cpu_core,
            "info_domains": self.info_domains,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "legacy_id": self.legacy_id,
        }


@dataclass
class ContentBlockRecord:
    """A keyed block of page content."""
    key: str
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[str] = None
    legacy_hosting_id: Optional[int] = None
    hosting_id: Optional[str] = None
    is_active: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    legacy_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "legacy_hosting_id": self.legacy_hosting_id,
            "hosting_id": self.hosting_id,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "legacy_id": self.legacy_id,
        }
