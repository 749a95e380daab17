"""
reports.py
Dashboard and collection summaries (pandas frames over members / payments).
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Iterable

import pandas as pd

from models import MEMBERSHIP_FEES, AttendanceRecord, LifecycleStatus, Member, PaymentEvent, PaymentStatus
from status import days_overdue, member_status, payment_priority
from utils import as_date

MEMBER_COLUMNS = [
    "id", "roll_number", "name", "phone", "membership_tier", "join_date", "expiry_date",
    "fee", "paid_amount", "remaining", "lifecycle_status", "payment_status",
    "days_until_expiry", "days_in_shortlist",
]


def members_frame(members: Iterable[Member], today: date | datetime) -> pd.DataFrame:
    rows = []
    for m in members:
        st = member_status(m, today)
        rows.append({
            "id": m.id,
            "roll_number": m.roll_number,
            "name": m.name,
            "phone": m.phone,
            "membership_tier": m.membership_tier,
            "join_date": m.join_date,
            "expiry_date": m.expiry_date,
            "fee": m.fee,
            "paid_amount": m.paid_amount,
            "remaining": m.remaining,
            "lifecycle_status": st.lifecycle.value,
            "payment_status": st.payment.value,
            "days_until_expiry": st.days_until_expiry,
            "days_in_shortlist": st.days_in_shortlist,
        })
    return pd.DataFrame(rows, columns=MEMBER_COLUMNS)


def dashboard_summary(
    members: Iterable[Member],
    attendance: Iterable[AttendanceRecord],
    today: date | datetime,
) -> dict:
    today = as_date(today)
    df = members_frame(members, today)
    expired = int((df["lifecycle_status"] == LifecycleStatus.EXPIRED.value).sum())

    monthly_income = 0.0
    if not df.empty:
        joined_this_month = df["join_date"].map(lambda d: (d.year, d.month) == (today.year, today.month))
        monthly_income = float(df.loc[joined_this_month.astype(bool), "fee"].sum())

    tier_counts = df["membership_tier"].value_counts().to_dict()
    return {
        "total_members": int(len(df)),
        "active_members": int(len(df)) - expired,
        "expired_members": expired,
        "today_attendance": sum(1 for r in attendance if as_date(r.date) == today),
        "total_income": float(df["fee"].sum()),
        "pending_amount": float(df["remaining"].sum()),
        "monthly_income": monthly_income,
        "members_by_tier": {tier: int(tier_counts.get(tier, 0)) for tier in MEMBERSHIP_FEES},
    }


def pending_payments(members: Iterable[Member], today: date | datetime) -> pd.DataFrame:
    """
    Members who still owe money, most overdue first.
    """
    rows = []
    for m in members:
        if m.remaining <= 0:
            continue
        st = member_status(m, today)
        rows.append({
            "id": m.id,
            "roll_number": m.roll_number,
            "name": m.name,
            "phone": m.phone,
            "fee": m.fee,
            "paid_amount": m.paid_amount,
            "remaining": m.remaining,
            "expiry_date": m.expiry_date,
            "payment_status": st.payment.value,
            "days_overdue": days_overdue(st),
            "priority": payment_priority(st),
        })
    df = pd.DataFrame(rows, columns=[
        "id", "roll_number", "name", "phone", "fee", "paid_amount", "remaining",
        "expiry_date", "payment_status", "days_overdue", "priority",
    ])
    return df.sort_values(["days_overdue", "roll_number"], ascending=[False, True]).reset_index(drop=True)


def pending_totals(df: pd.DataFrame) -> dict:
    overdue = df[df["payment_status"] == PaymentStatus.OVERDUE.value]
    return {
        "total_pending": int(len(df)),
        "total_amount": float(df["remaining"].sum()),
        "overdue_count": int(len(overdue)),
        "overdue_amount": float(overdue["remaining"].sum()),
    }


def revenue_by_month(events: Iterable[PaymentEvent]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"month": e.timestamp.strftime("%Y-%m"), "amount": e.amount} for e in events],
        columns=["month", "amount"],
    )
    if df.empty:
        return pd.DataFrame(columns=["month", "revenue"])
    out = df.groupby("month", as_index=False)["amount"].sum().rename(columns={"amount": "revenue"})
    return out.sort_values("month", ascending=False).reset_index(drop=True)


# ------------------------------------------------------------
# Revenue by join date (fee of each member in the period they joined)
# ------------------------------------------------------------

def _join_frame(members: Iterable[Member]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"join_date": m.join_date, "fee": m.fee or 0, "membership_tier": m.membership_tier} for m in members],
        columns=["join_date", "fee", "membership_tier"],
    )
    df["join_date"] = pd.to_datetime(df["join_date"])
    df["year"] = df["join_date"].dt.year
    df["month"] = df["join_date"].dt.month
    return df


def new_members_by_month(members: Iterable[Member], year: int) -> pd.DataFrame:
    """
    Joins and revenue for each month of ``year``, plus the running member total
    at the end of each month.
    """
    df = _join_frame(members)
    grouped = (
        df[df["year"] == year]
        .groupby("month")
        .agg(revenue=("fee", "sum"), new_members=("fee", "size"))
        .reindex(range(1, 13), fill_value=0)
    )
    joined_before = int((df["year"] < year).sum())
    return pd.DataFrame({
        "month": [calendar.month_abbr[i] for i in grouped.index],
        "revenue": grouped["revenue"].to_list(),
        "new_members": grouped["new_members"].astype(int).to_list(),
        "total_members": (joined_before + grouped["new_members"].cumsum()).astype(int).to_list(),
    })


def revenue_by_quarter(members: Iterable[Member], year: int) -> pd.DataFrame:
    months = new_members_by_month(members, year)
    months["quarter"] = [f"Q{i // 3 + 1}" for i in range(12)]
    out = (
        months.groupby("quarter")
        .agg(revenue=("revenue", "sum"), new_members=("new_members", "sum"))
        .reset_index()
    )
    out["average_monthly_revenue"] = out["revenue"] / 3
    return out


def revenue_by_year(members: Iterable[Member], today: date | datetime, span: int = 3) -> pd.DataFrame:
    """The last ``span`` calendar years up to and including the current one."""
    current = as_date(today).year
    years = list(range(current - span + 1, current + 1))
    grouped = (
        _join_frame(members)
        .groupby("year")
        .agg(revenue=("fee", "sum"), new_members=("fee", "size"))
        .reindex(years, fill_value=0)
    )
    return pd.DataFrame({
        "year": years,
        "revenue": grouped["revenue"].to_list(),
        "new_members": grouped["new_members"].astype(int).to_list(),
    })


def revenue_by_tier(members: Iterable[Member]) -> pd.DataFrame:
    grouped = (
        _join_frame(members)
        .groupby("membership_tier")
        .agg(count=("fee", "size"), revenue=("fee", "sum"))
        .reindex(list(MEMBERSHIP_FEES), fill_value=0)
    )
    counts = grouped["count"].astype(int).to_list()
    revenue = grouped["revenue"].to_list()
    return pd.DataFrame({
        "tier": list(MEMBERSHIP_FEES),
        "count": counts,
        "revenue": revenue,
        "average_revenue": [r / c if c else 0 for r, c in zip(revenue, counts)],
    })


def revenue_summary(members: Iterable[Member], today: date | datetime) -> dict:
    today = as_date(today)
    members = list(members)
    df = _join_frame(members)

    this_year = float(df.loc[df["year"] == today.year, "fee"].sum())
    last_year = float(df.loc[df["year"] == today.year - 1, "fee"].sum())
    growth_rate = (this_year - last_year) / last_year * 100 if last_year > 0 else 0.0

    expired = sum(1 for m in members if member_status(m, today).lifecycle is LifecycleStatus.EXPIRED)
    return {
        "total_revenue": float(df["fee"].sum()),
        "total_members": len(members),
        "active_members": len(members) - expired,
        "pending_amount": float(sum(m.remaining for m in members)),
        "average_monthly_revenue": this_year / 12,
        "growth_rate": growth_rate,
    }
