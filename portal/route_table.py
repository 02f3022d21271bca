"""
Gold Bottom Ent. Portal — Route definitions.

Static mapping of route name to content location, plus the classification
the router needs: layout (public vs dashboard), theme, legacy aliases,
breadcrumb labels and the role- / environment-restricted sets.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class Layout(str, Enum):
    PUBLIC = "public"
    DASHBOARD = "dashboard"


class Theme(str, Enum):
    DEFAULT = "default"
    ENTERTAINMENT = "entertainment"
    ENTERPRISE = "enterprise"


DASHBOARD_PREFIX = "dashboard-"
THEME_PREFIXES = {
    "ent-": Theme.ENTERTAINMENT,
    "biz-": Theme.ENTERPRISE,
}

ROUTES: dict[str, str] = {
    # Public pages
    "home": "pages/home.html",
    "roster": "pages/roster.html",
    "services": "pages/services.html",
    "shop": "pages/shop.html",
    "about": "pages/about.html",
    "contact": "pages/contact.html",
    "legal": "pages/legal.html",
    # Gold Bottom Entertainment
    "ent-home": "pages/entertainment/home.html",
    "ent-roster": "pages/entertainment/roster.html",
    "ent-booking": "pages/entertainment/booking.html",
    # Gold Bottom Enterprise
    "biz-home": "pages/enterprise/home.html",
    "biz-services": "pages/enterprise/services.html",
    "biz-portfolio": "pages/enterprise/portfolio.html",
    # Dashboard pages
    "dashboard-home": "dashboard/home.html",
    "dashboard-roster": "dashboard/roster.html",
    "dashboard-contracts": "dashboard/contracts.html",
    "dashboard-finances": "dashboard/finances.html",
    "dashboard-booking": "dashboard/booking.html",
    "dashboard-merch": "dashboard/merch.html",
    "dashboard-travel": "dashboard/travel.html",
    "dashboard-calendar": "dashboard/calendar.html",
    "dashboard-ip": "dashboard/ip-rights.html",
    "dashboard-distribution": "dashboard/distribution.html",
    "dashboard-documents": "dashboard/documents.html",
    "dashboard-integrations": "dashboard/integrations.html",
    "dashboard-settings": "dashboard/settings.html",
    "dashboard-venues": "dashboard/venues.html",
    "dashboard-it": "dashboard/it.html",
    "dashboard-team": "dashboard/team.html",
}

ALIASES: dict[str, str] = {
    "dashboard": "dashboard-home",
    "admin": "dashboard-home",
    "entertainment": "ent-home",
    "enterprise": "biz-home",
    "booking": "ent-booking",
    "dashboard-ip-rights": "dashboard-ip",
    "dashboard-venue-leads": "dashboard-venues",
}

BREADCRUMBS: dict[str, str] = {
    "dashboard-home": "Dashboard",
    "dashboard-roster": "Roster Management",
    "dashboard-contracts": "Contracts",
    "dashboard-finances": "Finances & Accounting",
    "dashboard-booking": "Booking Pipeline",
    "dashboard-merch": "Merch & Ecommerce",
    "dashboard-travel": "Travel & Logistics",
    "dashboard-calendar": "Calendar",
    "dashboard-ip": "IP & Rights",
    "dashboard-distribution": "Distribution",
    "dashboard-documents": "Documents",
    "dashboard-integrations": "Integrations",
    "dashboard-settings": "Settings",
    "dashboard-venues": "Venue Leads",
    "dashboard-it": "IT & Infrastructure",
    "dashboard-team": "Team Access",
}

ADMIN_ONLY: frozenset[str] = frozenset({"dashboard-team"})
LOCAL_ONLY: frozenset[str] = frozenset({
    "dashboard-finances",
    "dashboard-documents",
    "dashboard-settings",
    "dashboard-it",
})


@dataclass(frozen=True)
class RouteTable:
    """Immutable route configuration; built once at startup."""
    routes: Mapping[str, str] = field(default_factory=lambda: dict(ROUTES))
    aliases: Mapping[str, str] = field(default_factory=lambda: dict(ALIASES))
    breadcrumbs: Mapping[str, str] = field(default_factory=lambda: dict(BREADCRUMBS))
    admin_only: frozenset[str] = ADMIN_ONLY
    local_only: frozenset[str] = LOCAL_ONLY
    default_route: str = "home"
    admin_home: str = "dashboard-home"

    def resolve(self, name: Optional[str]) -> str:
        """Strip a leading ``#`` and map legacy aliases to canonical names."""
        name = (name or "").lstrip("#").strip()
        return self.aliases.get(name, name)

    def exists(self, name: str) -> bool:
        return name in self.routes

    def location(self, name: str) -> Optional[str]:
        return self.routes.get(name)

    def is_restricted(self, name: str) -> bool:
        return name.startswith(DASHBOARD_PREFIX)

    def layout_for(self, name: str) -> Layout:
        return Layout.DASHBOARD if self.is_restricted(name) else Layout.PUBLIC

    def theme_for(self, name: str) -> Theme:
        for prefix, theme in THEME_PREFIXES.items():
            if name.startswith(prefix):
                return theme
        return Theme.DEFAULT

    def breadcrumb(self, name: str) -> str:
        return self.breadcrumbs.get(name, "Dashboard")

    def is_admin_only(self, name: str) -> bool:
        return name in self.admin_only

    def is_local_only(self, name: str) -> bool:
        return name in self.local_only
