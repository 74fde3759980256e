from __future__ import annotations

SECONDS_PER_DAY = 86_400
SECONDS_PER_HOUR = 3_600


def bucket_index(timestamp: int, period: int) -> int:
    """Bucket number of a unix timestamp for a fixed-width period."""
    if period <= 0:
        raise ValueError("period must be positive")
    return timestamp // period


def day_index(timestamp: int) -> int:
    return bucket_index(timestamp, SECONDS_PER_DAY)


def hour_index(timestamp: int) -> int:
    return bucket_index(timestamp, SECONDS_PER_HOUR)


def snapshot_id(subject_id: str, index: int) -> str:
    return f"{subject_id}-{index}"


def active_account_id(account_id: str, index: int) -> str:
    return f"{account_id}-{index}"


def event_record_id(kind: str, transaction_hash: str, log_index: int) -> str:
    return f"{kind}-{transaction_hash}-{log_index}"
