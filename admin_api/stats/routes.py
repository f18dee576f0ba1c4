"""Dashboard statistics and monthly cost endpoints."""

import asyncio
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends

from admin_api.db.client import CollectionStore
from admin_api.db.models import AGENTS, CONVERSATIONS, MESSAGES, TRANSACTIONS, USERS, utcnow
from admin_api.dependencies import get_store
from admin_api.resources.identity import to_jsonable
from admin_api.utils.cost_tracker import format_cost, month_window

router = APIRouter(prefix="/api", tags=["Stats"])

TOP_CONSUMERS = 10
RECENT_DAYS = 7


@router.get("/stats", summary="Dashboard counters")
async def stats(store: CollectionStore = Depends(get_store)):
    since = utcnow() - timedelta(days=RECENT_DAYS)
    recent = {"createdAt": {"$gte": since}}
    users, convos, messages, agents, recent_users, recent_convos = await asyncio.gather(
        store.count(USERS),
        store.count(CONVERSATIONS),
        store.count(MESSAGES),
        store.count(AGENTS),
        store.count(USERS, recent),
        store.count(CONVERSATIONS, recent),
    )
    return {
        "totalUsers": users,
        "totalConversations": convos,
        "totalMessages": messages,
        "totalAgents": agents,
        "recentUsers": recent_users,
        "recentConversations": recent_convos,
    }


def _month_pipeline(start: datetime, end: datetime, group_key) -> list[dict]:
    return [
        {"$match": {"createdAt": {"$gte": start, "$lt": end}}},
        {"$group": {
            "_id": group_key,
            "totalTokens": {"$sum": {"$abs": "$rawAmount"}},
            "totalValue": {"$sum": {"$abs": "$tokenValue"}},
            "transactionCount": {"$sum": 1},
        }},
    ]


@router.get("/cost-stats", summary="Token usage and estimated cost for the current month")
async def cost_stats(store: CollectionStore = Depends(get_store)):
    start, end = month_window(utcnow())

    consumers_pipeline = _month_pipeline(start, end, "$user") + [
        {"$sort": {"totalTokens": -1}},
        {"$limit": TOP_CONSUMERS},
        {"$lookup": {"from": USERS, "localField": "_id", "foreignField": "_id", "as": "userInfo"}},
        {"$unwind": {"path": "$userInfo", "preserveNullAndEmptyArrays": True}},
    ]
    consumers, overall_rows = await asyncio.gather(
        store.aggregate(TRANSACTIONS, consumers_pipeline),
        store.aggregate(TRANSACTIONS, _month_pipeline(start, end, None)),
    )

    top_consumers = []
    for row in consumers:
        user = row.get("userInfo") or {}
        top_consumers.append({
            "userId": to_jsonable(row["_id"]),
            "username": user.get("name") or user.get("username") or "Unknown",
            "email": user.get("email") or "N/A",
            "totalTokens": row["totalTokens"],
            "totalValue": row["totalValue"],
            "transactionCount": row["transactionCount"],
            "estimatedCost": format_cost(row["totalTokens"]),
        })

    overall = overall_rows[0] if overall_rows else {"totalTokens": 0, "totalValue": 0, "transactionCount": 0}
    return {
        "period": {
            "start": start.replace(tzinfo=timezone.utc).isoformat(),
            "end": end.replace(tzinfo=timezone.utc).isoformat(),
            "month": start.strftime("%Y-%m"),
        },
        "overall": {
            "totalTokens": overall["totalTokens"],
            "totalValue": overall["totalValue"],
            "transactionCount": overall["transactionCount"],
            "estimatedCost": format_cost(overall["totalTokens"]),
        },
        "topConsumers": top_consumers,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
