# app/esign/utils.py

from datetime import date
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.leases.models import Lease
from app.utils.general import format_amount, format_long_date, utc_now

LEASE_TEMPLATE = "residential_lease.html"
MONTH_TO_MONTH = "Month-to-Month"

template_env = Environment(
    loader=FileSystemLoader(Path(__file__).parent.parent / "templates" / "leases"),
    autoescape=select_autoescape(["html"]),
)


def property_label(lease: Lease) -> str:
    """`{property} - {unit} ({type})`"""
    unit = lease.unit
    property_name = unit.property.name if unit.property else None
    return f"{property_name or 'Property'} - {unit.name} ({unit.type})"


def landlord_display_name(lease: Lease) -> str:
    landlord = lease.landlord
    if landlord and landlord.name:
        return landlord.name
    if lease.unit and lease.unit.property and lease.unit.property.name:
        return lease.unit.property.name
    return "Landlord"


def tenant_display_name(lease: Lease) -> str:
    if lease.tenant and lease.tenant.name:
        return lease.tenant.name
    return "Tenant"


def render_lease_html(lease: Lease, today: Optional[date] = None) -> str:
    """
    Fill the residential lease template with the lease terms.

    The only branch is the end date: leases without one read as
    month-to-month.
    """
    today = today or utc_now().date()
    context = {
        "landlord_name": landlord_display_name(lease),
        "tenant_name": tenant_display_name(lease),
        "property_label": property_label(lease),
        "lease_start_date": format_long_date(lease.start_date),
        "lease_end_date": format_long_date(lease.end_date) if lease.end_date else MONTH_TO_MONTH,
        "rent_amount": format_amount(lease.rent_amount),
        "billing_day_of_month": str(lease.billing_day_of_month),
        "today_date": format_long_date(today),
    }
    return template_env.get_template(LEASE_TEMPLATE).render(context)
