"""Token cost estimation."""

from datetime import datetime

# Flat approximation in USD; no per-model pricing is applied
COST_PER_1K_TOKENS = 0.002


def estimate_cost(tokens: int | float, rate: float = COST_PER_1K_TOKENS) -> float:
    return (tokens / 1000) * rate


def format_cost(tokens: int | float) -> str:
    return f"{estimate_cost(tokens):.2f}"


def month_window(now: datetime) -> tuple[datetime, datetime]:
    """First instant of ``now``'s calendar month and of the following month."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end
