"""
Gold Bottom Ent. Portal — Derived reads.

Pure filters and aggregates over collection snapshots. Nothing here touches
the store; pass in what ``EntityRepository.get_all`` returns.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from portal.repository import EntityRepository


def parse_amount(value) -> float:
    """Lenient number parsing: strings like ``"12.50"`` count, junk counts as 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number == number else 0.0  # NaN


def _sum(items: Iterable[dict], field: str) -> float:
    return sum(parse_amount(i.get(field)) for i in items)


def by_field(items: list[dict], field: str, value) -> list[dict]:
    return [i for i in items if i.get(field) == value]


# ── Roster / contracts ──────────────────────────────────


def roster_by_category(roster: list[dict], category: str) -> list[dict]:
    return by_field(roster, "category", category)


def active_roster(roster: list[dict]) -> list[dict]:
    return by_field(roster, "status", "active")


def contracts_by_status(contracts: list[dict], status: str) -> list[dict]:
    return by_field(contracts, "status", status)


def active_contracts(contracts: list[dict]) -> list[dict]:
    return [c for c in contracts if c.get("status") in ("signed", "active")]


# ── Finances ────────────────────────────────────────────


def total_amount(entries: list[dict]) -> float:
    return _sum(entries, "amount")


def net_income(revenue: list[dict], expenses: list[dict]) -> float:
    return total_amount(revenue) - total_amount(expenses)


def outstanding_invoices(invoices: list[dict]) -> list[dict]:
    return [i for i in invoices if i.get("status") in ("sent", "overdue")]


def merch_revenue(orders: list[dict]) -> float:
    return _sum(orders, "total")


# ── Calendar / pipeline ─────────────────────────────────


def upcoming_events(events: list[dict], limit: int = 10, now: Optional[str] = None) -> list[dict]:
    """Events on or after ``now`` (ISO string), soonest first."""
    now = now or datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    upcoming = [e for e in events if (e.get("date") or "") >= now]
    return sorted(upcoming, key=lambda e: e.get("date") or "")[:limit]


def events_by_month(events: list[dict], year: int, month: int) -> list[dict]:
    """``month`` is zero-based (0 = January)."""
    prefix = f"{year}-{month + 1:02d}"
    return [e for e in events if (e.get("date") or "").startswith(prefix)]


def bookings_by_stage(bookings: list[dict], stage: str) -> list[dict]:
    return by_field(bookings, "stage", stage)


# ── Venue leads / IT ────────────────────────────────────


def venue_leads_by_category(leads: list[dict], category: str) -> list[dict]:
    return by_field(leads, "category", category)


def venue_leads_by_status(leads: list[dict], status: str) -> list[dict]:
    return by_field(leads, "outreachStatus", status)


def credentials_by_category(credentials: list[dict], category: str) -> list[dict]:
    return by_field(credentials, "category", category)


def active_servers(servers: list[dict]) -> list[dict]:
    return by_field(servers, "status", "active")


def total_monthly_cost(servers: list[dict]) -> float:
    return _sum(active_servers(servers), "monthlyCost")


# ── Dashboard ───────────────────────────────────────────


def dashboard_metrics(repo: EntityRepository, include_financials: bool = False) -> dict:
    """Headline numbers for the dashboard home. Financials only for the local tier."""
    roster = repo.get_all("roster")
    contracts = repo.get_all("contracts")
    leads = repo.get_all("venue-leads")

    metrics = {
        "rosterCount": len(active_roster(roster)),
        "totalRoster": len(roster),
        "activeContracts": len(active_contracts(contracts)),
        "totalContracts": len(contracts),
        "upcomingEvents": len(upcoming_events(repo.get_all("events"), limit=5)),
        "totalBookings": len(repo.get_all("bookings")),
        "ipEntries": len(repo.get_all("ip-rights")),
        "totalVenueLeads": len(leads),
        "contactedVenues": len(venue_leads_by_status(leads, "contacted")),
        "bookedVenues": len(venue_leads_by_status(leads, "booked")),
    }
    if include_financials:
        revenue = repo.get_all("revenue")
        expenses = repo.get_all("expenses")
        metrics.update({
            "revenueYTD": total_amount(revenue),
            "expensesYTD": total_amount(expenses),
            "netIncome": net_income(revenue, expenses),
            "merchSales": merch_revenue(repo.get_all("merch-orders")),
            "outstandingInvoices": total_amount(outstanding_invoices(repo.get_all("invoices"))),
        })
    return metrics
