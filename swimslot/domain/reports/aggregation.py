"""
Report aggregation

Pure functions over already-fetched bookings and payments. A purchase is a
booking group, or a standalone booking; period counts are of purchases, so a
three-day group counts once for each distinct day, week, month and year it
touches.
"""

from collections import Counter, defaultdict
from datetime import date
from typing import Iterable


def purchase_key(booking) -> str:
    return booking.group_id or booking.id


def week_key(day: date) -> str:
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def year_key(day: date) -> str:
    return str(day.year)


PERIODS = {
    "by_day": date.isoformat,
    "by_week": week_key,
    "by_month": month_key,
    "by_year": year_key,
}


def bookings_in_range(bookings: Iterable, start: date, end: date) -> list:
    return [b for b in bookings if start <= b.booking_date <= end]


def count_purchases_by_period(bookings: Iterable) -> dict[str, dict[str, int]]:
    touched = {name: defaultdict(set) for name in PERIODS}
    for booking in bookings:
        key = purchase_key(booking)
        for name, period_of in PERIODS.items():
            touched[name][period_of(booking.booking_date)].add(key)

    return {
        name: {period: len(keys) for period, keys in sorted(periods.items())}
        for name, periods in touched.items()
    }


def payments_for_purchases(bookings: Iterable, payments: Iterable) -> list:
    """Payments belonging to the given bookings' purchases, each payment once"""
    bookings = list(bookings)
    group_ids = {b.group_id for b in bookings if b.group_id}
    booking_ids = {b.id for b in bookings}

    matched = {}
    for payment in payments:
        if (payment.group_id and payment.group_id in group_ids) or (
            payment.booking_id and payment.booking_id in booking_ids
        ):
            matched[payment.id] = payment
    return list(matched.values())


def sum_amounts(payments: Iterable, status: str) -> float:
    return round(sum(p.amount or 0 for p in payments if p.status == status), 2)


def booking_report(bookings: Iterable, payments: Iterable, start: date, end: date) -> dict:
    """Bookings dated within [start, end] grouped by status and period, with their revenue"""
    selected = bookings_in_range(bookings, start, end)
    purchase_payments = payments_for_purchases(selected, payments)
    revenue = sum_amounts(purchase_payments, "success")
    refunded = sum_amounts(purchase_payments, "refunded")

    report = {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_bookings": len(selected),
        "total_purchases": len({purchase_key(b) for b in selected}),
        "by_status": dict(Counter(b.status for b in selected)),
        "revenue": revenue,
        "refunded": refunded,
    }
    report.update(count_purchases_by_period(selected))
    return report


def revenue_report(payments: Iterable, start: date, end: date) -> dict:
    """Payment outcomes for payments already selected for [start, end]"""
    payments = list(payments)
    successful = [p for p in payments if p.status == "success"]
    total_revenue = sum_amounts(payments, "success")
    total_refunded = sum_amounts(payments, "refunded")

    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_payments": len(payments),
        "successful_payments": len(successful),
        "failed_payments": sum(1 for p in payments if p.status == "failed"),
        "pending_payments": sum(1 for p in payments if p.status == "pending"),
        "refunded_payments": sum(1 for p in payments if p.status == "refunded"),
        "total_revenue": total_revenue,
        "total_refunded": total_refunded,
        "net_revenue": round(total_revenue - total_refunded, 2),
        "payment_methods": dict(Counter(p.payment_method or "unknown" for p in successful)),
    }
