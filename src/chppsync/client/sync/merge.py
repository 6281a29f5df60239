"""Merging of basic and detailed player records.

The players file lists the whole roster with a basic view of each player;
playerdetails adds skills and extra fields but can omit values the basic
view has. The merged record starts from the detailed view and backfills its
gaps from the basic one.
"""

from __future__ import annotations

from dataclasses import fields, replace
from typing import Any

from chppsync.client.models import Player

# Never taken from the basic view
_NOT_BACKFILLED = frozenset({"player_id", "skills"})


def merge_player_data(basic: Player, detailed: Player | None = None) -> Player:
    """Combine the basic and detailed view of a player.

    Args:
        basic: Record from the players file.
        detailed: Record from playerdetails, or None if the fetch failed.

    Returns:
        basic unchanged when detailed is None. Otherwise detailed, with each
        field it leaves as None filled from basic (skills excepted), and
        country_id falling back to native_country_id.
    """
    if detailed is None:
        return basic

    backfill: dict[str, Any] = {}
    for f in fields(Player):
        if f.name in _NOT_BACKFILLED:
            continue
        if getattr(detailed, f.name) is None:
            value = getattr(basic, f.name)
            if value is not None:
                backfill[f.name] = value

    merged = replace(detailed, **backfill) if backfill else detailed

    if merged.country_id is None and merged.native_country_id is not None:
        merged = replace(merged, country_id=merged.native_country_id)

    return merged
