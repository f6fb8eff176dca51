# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Small string helpers shared by config, credentials and backends.

Exports:
    is_blank: True for None, empty or whitespace-only strings.
    split_and_strip: Split comma-separated string and strip whitespace.
"""

from __future__ import annotations


def is_blank(value: str | None) -> bool:
    """Return True if value is None, empty, or made only of whitespace.

    Examples:
        is_blank(None)     # True
        is_blank("   ")    # True
        is_blank(" a ")    # False
    """
    return value is None or not value.strip()


def split_and_strip(
    value: str | list[str] | tuple[str, ...] | None, default: list[str] | None = None
) -> list[str]:
    """Split comma-separated string and strip whitespace from each item.

    If value is already a list or tuple, returns a list copy. If None, returns
    default. Empty items are dropped.

    Examples:
        split_and_strip("wheel, staff")  # ["wheel", "staff"]
        split_and_strip(["x", "y"])      # ["x", "y"]
        split_and_strip(None, ["users"]) # ["users"]
    """
    if value is None:
        return default if default is not None else []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


__all__ = ["is_blank", "split_and_strip"]
