# utility_mcp/services/analytics_service.py
"""
Read-only aggregation queries behind the analytics tools.

Pipeline builders are pure functions returning the stages to run; the
async query functions execute them against a motor database and reshape
the raw rows into the response contracts in ``models.tool_schema``.

Customer-type policy:
- customers: type tag is segment 2 of ``code`` (``prefix:type:suffix``)
- payments: type tag is segment 1 of ``external_id`` (``type-rest``)
- daily summaries: the stored ``customerType`` field
Tags outside ``CustomerType`` never get a bucket of their own but still
count towards the grand totals.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from utility_mcp.models.documents import (
    CUSTOMER_TYPES,
    CUSTOMERS,
    DAILY_ENERGY_SUMMARY,
    HOURS,
    PAYMENTS,
    UTILITIES,
    Utility,
)

logger = logging.getLogger(__name__)

TOP_CONSUMERS_LIMIT = 10
UNKNOWN_CUSTOMER_NAME = "Unknown"


class UtilityDocumentError(LookupError):
    """A stored utility document does not have the expected shape."""


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------
def month_window(month: str) -> Tuple[datetime, Optional[datetime]]:
    """Return ``[start, end)`` in UTC for a ``YYYY-MM`` month.

    ``end`` is None for December 9999, whose successor month is not a
    representable datetime; the window is then open above.
    """
    start = datetime.strptime(f"{month}-01", "%Y-%m-%d").replace(tzinfo=timezone.utc)
    if start.month != 12:
        return start, start.replace(month=start.month + 1)
    if start.year == datetime.max.year:
        return start, None
    return start, start.replace(year=start.year + 1, month=1)


def year_window(year: str) -> Tuple[datetime, Optional[datetime]]:
    """Return ``[start, end)`` in UTC for a ``YYYY`` year (``end`` None for 9999)."""
    start = datetime.strptime(f"{year}-01-01", "%Y-%m-%d").replace(tzinfo=timezone.utc)
    if start.year == datetime.max.year:
        return start, None
    return start, start.replace(year=start.year + 1)


def timestamp_range(start: datetime, end: Optional[datetime]) -> Dict[str, datetime]:
    bounds = {"$gte": start}
    if end is not None:
        bounds["$lt"] = end
    return bounds


def months_of_year(year: str) -> List[str]:
    return [f"{year}-{m:02d}" for m in range(1, 13)]


def zero_filled(rows: List[Dict[str, Any]], key: str, value: str) -> Dict[str, Any]:
    """Map every known customer type to its value in ``rows`` (0 when absent)."""
    totals: Dict[str, Any] = {t: 0 for t in CUSTOMER_TYPES}
    for row in rows:
        tag = row.get(key)
        if tag in totals:
            totals[tag] += row.get(value) or 0
    return totals


# ---------------------------------------------------------------------------
# Pipeline builders
# ---------------------------------------------------------------------------
def customers_count_pipeline(utility_id: str, all_customers: bool = False) -> List[Dict[str, Any]]:
    match: Dict[str, Any] = {"service_area_id": utility_id}
    if not all_customers:
        match["active"] = True

    return [
        {"$match": match},
        {"$addFields": {"splitCode": {"$split": ["$code", ":"]}}},
        {
            "$group": {
                "_id": {"$arrayElemAt": ["$splitCode", 1]},
                "count": {"$sum": 1},
            }
        },
        {"$project": {"_id": 0, "customer_type": "$_id", "count": 1}},
    ]


def payment_totals_pipeline(utility_id: str, start: datetime, end: Optional[datetime]) -> List[Dict[str, Any]]:
    return [
        {
            "$match": {
                "service_area_id": ObjectId(utility_id),
                "timestamp": timestamp_range(start, end),
            }
        },
        {"$sort": {"timestamp": 1}},
        {"$addFields": {"splitId": {"$split": ["$external_id", "-"]}}},
        {
            "$group": {
                "_id": {"$arrayElemAt": ["$splitId", 0]},
                "totalAmount": {"$sum": {"$toDouble": "$amount.value"}},
                "totalKWh": {"$sum": "$amount.kWh"},
                "currency": {"$first": "$amount.currency"},
            }
        },
        {
            "$project": {
                "_id": 0,
                "customer_type": "$_id",
                "totalAmount": 1,
                "totalKWh": 1,
                "currency": 1,
            }
        },
        {"$sort": {"customer_type": 1}},
    ]


def yearly_payment_totals_pipeline(utility_id: str, start: datetime, end: Optional[datetime]) -> List[Dict[str, Any]]:
    return [
        {
            "$match": {
                "service_area_id": ObjectId(utility_id),
                "timestamp": timestamp_range(start, end),
            }
        },
        {"$sort": {"timestamp": 1}},
        {"$addFields": {"splitId": {"$split": ["$external_id", "-"]}}},
        {
            "$group": {
                "_id": {
                    "month": {"$dateToString": {"format": "%Y-%m", "date": "$timestamp", "timezone": "UTC"}},
                    "customer_type": {"$arrayElemAt": ["$splitId", 0]},
                },
                "totalAmount": {"$sum": {"$toDouble": "$amount.value"}},
                "totalKWh": {"$sum": "$amount.kWh"},
                "currency": {"$first": "$amount.currency"},
                "lastCurrency": {"$last": "$amount.currency"},
                "lastAt": {"$max": "$timestamp"},
            }
        },
        {
            "$project": {
                "_id": 0,
                "month": "$_id.month",
                "customer_type": "$_id.customer_type",
                "totalAmount": 1,
                "totalKWh": 1,
                "currency": 1,
                "lastCurrency": 1,
                "lastAt": 1,
            }
        },
        {"$sort": {"month": 1, "customer_type": 1}},
    ]


def _by_type_stages() -> List[Dict[str, Any]]:
    return [{"$group": {"_id": "$customerType", "totalKWh": {"$sum": "$totalKWh"}}}]


def _customer_count_stages() -> List[Dict[str, Any]]:
    return [{"$group": {"_id": "$customerId"}}, {"$count": "count"}]


def top_consumers_stages(limit: int = TOP_CONSUMERS_LIMIT) -> List[Dict[str, Any]]:
    return [
        {"$group": {"_id": "$customerId", "totalKWh": {"$sum": "$totalKWh"}}},
        {"$sort": {"totalKWh": -1, "_id": 1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": CUSTOMERS,
                "localField": "_id",
                "foreignField": "_id",
                "as": "customer",
            }
        },
        {
            "$project": {
                "_id": 0,
                "customerId": {"$toString": "$_id"},
                "totalKWh": 1,
                "name": {"$ifNull": [{"$arrayElemAt": ["$customer.name", 0]}, UNKNOWN_CUSTOMER_NAME]},
            }
        },
    ]


def daily_energy_pipeline(utility_id: str, date: str) -> List[Dict[str, Any]]:
    return [
        {"$match": {"service_area_id": utility_id, "date": date}},
        {
            "$facet": {
                "byType": _by_type_stages(),
                "customers": _customer_count_stages(),
                "hourly": [
                    {"$unwind": "$readings"},
                    {
                        "$group": {
                            "_id": "$readings.hour",
                            "totalKWh": {"$sum": "$readings.energy_consumption"},
                        }
                    },
                ],
            }
        },
    ]


def monthly_energy_pipeline(utility_id: str, month: str) -> List[Dict[str, Any]]:
    return [
        {"$match": {"service_area_id": utility_id, "date": {"$regex": f"^{month}-"}}},
        {
            "$facet": {
                "byType": _by_type_stages(),
                "customers": _customer_count_stages(),
                "topConsumers": top_consumers_stages(),
            }
        },
    ]


def yearly_energy_pipeline(utility_id: str, year: str) -> List[Dict[str, Any]]:
    return [
        {"$match": {"service_area_id": utility_id, "date": {"$regex": f"^{year}-"}}},
        {
            "$facet": {
                "byType": _by_type_stages(),
                "customers": _customer_count_stages(),
                "byMonth": [
                    {
                        "$group": {
                            "_id": {
                                "month": {"$substrBytes": ["$date", 0, 7]},
                                "customerType": "$customerType",
                            },
                            "totalKWh": {"$sum": "$totalKWh"},
                        }
                    },
                    {
                        "$project": {
                            "_id": 0,
                            "month": "$_id.month",
                            "customerType": "$_id.customerType",
                            "totalKWh": 1,
                        }
                    },
                ],
                "topConsumers": top_consumers_stages(),
            }
        },
    ]


# ---------------------------------------------------------------------------
# Result shaping
# ---------------------------------------------------------------------------
def _first_facet(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return rows[0] if rows else {}


def _facet_count(facet: Dict[str, Any]) -> int:
    counted = facet.get("customers") or []
    return int(counted[0].get("count", 0)) if counted else 0


def _type_rows(facet: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{"customerType": r.get("_id"), "totalKWh": r.get("totalKWh") or 0} for r in facet.get("byType") or []]


def _ranked(consumers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    ranked = sorted(consumers, key=lambda c: c.get("totalKWh") or 0, reverse=True)
    return ranked[:TOP_CONSUMERS_LIMIT]


async def _aggregate(db: AsyncIOMotorDatabase, collection: str, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    logger.debug(f"Aggregating {collection} with {len(pipeline)} stages")
    return await db[collection].aggregate(pipeline).to_list(length=None)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
async def fetch_utility_info(db: AsyncIOMotorDatabase, utility_id: str) -> Optional[Dict[str, Any]]:
    doc = await db[UTILITIES].find_one({"_id": ObjectId(utility_id)})
    if doc is None:
        return None

    try:
        utility = Utility.model_validate(doc)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise UtilityDocumentError(f"Utility {utility_id} has an invalid document ({fields})") from None
    return {
        "name": utility.name,
        "acronym": utility.acronym,
        "country": utility.country,
        "systemType": utility.systemType.value,
        "systemDescription": utility.systemDescription,
        "systemComponents": [c.model_dump() for c in utility.systemComponents],
        "totalInstalledCapacitykW": utility.totalInstalledCapacitykW,
        "numberOfCustomers": utility.numberOfCustomers,
        "isActive": utility.isActive,
    }


async def get_utility_info(db: AsyncIOMotorDatabase, utilityId: str) -> Dict[str, Any]:
    info = await fetch_utility_info(db, utilityId)
    if info is None:
        raise LookupError(f"Utility not found: {utilityId}")
    return info


async def _optional_utility_info(db: AsyncIOMotorDatabase, utility_id: str) -> Optional[Dict[str, Any]]:
    try:
        return await fetch_utility_info(db, utility_id)
    except UtilityDocumentError as e:
        logger.warning(f"Omitting utility info from customer count: {e}")
        return None


async def get_customers_count(
    db: AsyncIOMotorDatabase,
    utilityId: str,
    allCustomers: bool = False,
) -> Dict[str, Any]:
    # The two reads are independent; no snapshot is shared between them.
    utility, rows = await asyncio.gather(
        _optional_utility_info(db, utilityId),
        _aggregate(db, CUSTOMERS, customers_count_pipeline(utilityId, allCustomers)),
    )

    return {
        "totalCustomers": sum(r.get("count", 0) for r in rows),
        "customerType": zero_filled(rows, "customer_type", "count"),
        "utility": utility,
    }


async def get_monthly_payment_totals(db: AsyncIOMotorDatabase, utilityId: str, month: str) -> List[Dict[str, Any]]:
    # One entry per observed tag; absent types are not zero-filled here.
    start, end = month_window(month)
    rows = await _aggregate(db, PAYMENTS, payment_totals_pipeline(utilityId, start, end))
    return [
        {
            "customer_type": r.get("customer_type"),
            "totalAmount": r.get("totalAmount") or 0,
            "totalKWh": r.get("totalKWh") or 0,
            "currency": r.get("currency"),
        }
        for r in rows
    ]


async def get_daily_energy_summary(db: AsyncIOMotorDatabase, utilityId: str, date: str) -> Dict[str, Any]:
    datetime.strptime(date, "%Y-%m-%d")  # rejects impossible dates such as 2024-02-30
    facet = _first_facet(await _aggregate(db, DAILY_ENERGY_SUMMARY, daily_energy_pipeline(utilityId, date)))

    type_rows = _type_rows(facet)
    hourly = {h: 0 for h in HOURS}
    for r in facet.get("hourly") or []:
        if r.get("_id") in hourly:
            hourly[r["_id"]] += r.get("totalKWh") or 0

    return {
        "date": date,
        "totalKWh": sum(r["totalKWh"] for r in type_rows),
        "customerCount": _facet_count(facet),
        "consumptionByCustomerType": zero_filled(type_rows, "customerType", "totalKWh"),
        "hourlyConsumption": [{"hour": h, "totalKWh": v} for h, v in hourly.items()],
    }


async def get_monthly_energy_summary(db: AsyncIOMotorDatabase, utilityId: str, month: str) -> Dict[str, Any]:
    datetime.strptime(month, "%Y-%m")  # rejects months such as 2024-13
    facet = _first_facet(await _aggregate(db, DAILY_ENERGY_SUMMARY, monthly_energy_pipeline(utilityId, month)))

    type_rows = _type_rows(facet)
    return {
        "month": month,
        "totalKWh": sum(r["totalKWh"] for r in type_rows),
        "customerCount": _facet_count(facet),
        "consumptionByCustomerType": zero_filled(type_rows, "customerType", "totalKWh"),
        "topConsumers": _ranked(facet.get("topConsumers") or []),
    }


async def get_yearly_energy_summary(db: AsyncIOMotorDatabase, utilityId: str, year: str) -> Dict[str, Any]:
    datetime.strptime(year, "%Y")  # rejects year 0000
    facet = _first_facet(await _aggregate(db, DAILY_ENERGY_SUMMARY, yearly_energy_pipeline(utilityId, year)))

    by_month: Dict[str, List[Dict[str, Any]]] = {m: [] for m in months_of_year(year)}
    for r in facet.get("byMonth") or []:
        if r.get("month") in by_month:
            by_month[r["month"]].append(r)

    monthly = [
        {
            "month": month,
            "totalKWh": sum(r.get("totalKWh") or 0 for r in rows),
            "consumptionByCustomerType": zero_filled(rows, "customerType", "totalKWh"),
        }
        for month, rows in by_month.items()
    ]

    type_rows = _type_rows(facet)
    return {
        "year": year,
        "totalKWh": sum(r["totalKWh"] for r in type_rows),
        "customerCount": _facet_count(facet),
        "consumptionByCustomerType": zero_filled(type_rows, "customerType", "totalKWh"),
        "monthly": monthly,
        "topConsumers": _ranked(facet.get("topConsumers") or []),
    }


async def get_yearly_payment_totals(db: AsyncIOMotorDatabase, utilityId: str, year: str) -> Dict[str, Any]:
    start, end = year_window(year)
    rows = await _aggregate(db, PAYMENTS, yearly_payment_totals_pipeline(utilityId, start, end))

    by_month: Dict[str, List[Dict[str, Any]]] = {m: [] for m in months_of_year(year)}
    for r in rows:
        if r.get("month") in by_month:
            by_month[r["month"]].append(r)

    months = []
    currency: Optional[str] = None
    for month, month_rows in by_month.items():
        if month_rows:
            latest = max(month_rows, key=lambda r: _as_utc(r.get("lastAt")))
            currency = latest.get("lastCurrency") or latest.get("currency") or currency
        months.append(
            {
                "month": month,
                "totalAmount": sum(r.get("totalAmount") or 0 for r in month_rows),
                "totalKWh": sum(r.get("totalKWh") or 0 for r in month_rows),
                # carried forward into empty months for display
                "currency": currency,
                "byCustomerType": [
                    {
                        "customer_type": r.get("customer_type"),
                        "totalAmount": r.get("totalAmount") or 0,
                        "totalKWh": r.get("totalKWh") or 0,
                        "currency": r.get("currency"),
                    }
                    for r in month_rows
                ],
            }
        )

    return {
        "year": year,
        "totalAmount": sum(m["totalAmount"] for m in months),
        "totalKWh": sum(m["totalKWh"] for m in months),
        "currency": currency,
        "months": months,
    }


def _as_utc(value: Any) -> datetime:
    if not isinstance(value, datetime):
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
