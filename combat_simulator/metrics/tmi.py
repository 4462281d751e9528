"""Theck-Meloree Index (TMI): burst-damage risk of a tank.

Damage taken is logged as fractions of a reference health pool. A window
of ``bin_seconds`` slides across the encounter in one-second steps and
the damage inside each window position becomes one bucket. The index is
a soft maximum of the buckets::

    TMI = 10 * ln( mean( exp(10 * bucket) ) )

so a few spiky windows weigh far more than the same damage spread out.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import NamedTuple

# Exponent scale and result multiplier of the index.
TMI_FACTOR = 10.0

DEFAULT_TMI_BIN_SECONDS = 6


class TMIEvent(NamedTuple):
    """One damage-taken event."""

    timestamp: float  # seconds since encounter start
    weighted_damage: float  # fraction of the reference health pool


def tmi_buckets(
    events: Sequence[TMIEvent],
    bin_seconds: int,
    duration_seconds: float,
) -> list[float]:
    """Sum weighted damage inside each position of the sliding window.

    ``events`` must be ordered by timestamp. Both cursors only move
    forward, so the scan is linear in windows plus events.

    A window with no events still yields a 0 bucket as long as some event
    lies at or after the window start; windows past the last event are
    dropped.
    """
    buckets: list[float] = []
    first = 0
    end = 0
    last = len(events)

    step = 0
    while step < duration_seconds - bin_seconds:
        while first < last and events[first].timestamp < step:
            first += 1
        while end < last and events[end].timestamp < step + bin_seconds:
            end += 1

        if end > first:
            buckets.append(math.fsum(event.weighted_damage for event in events[first:end]))
        elif first < last:
            buckets.append(0.0)
        step += 1

    return buckets


def tmi_from_buckets(buckets: Sequence[float]) -> float:
    """Soft maximum of the buckets; 0.0 when there are none.

    Evaluated as a shifted log-sum-exp so large buckets cannot overflow
    ``math.exp``.
    """
    if not buckets:
        return 0.0
    peak = max(buckets)
    scaled_sum = math.fsum(math.exp(TMI_FACTOR * (bucket - peak)) for bucket in buckets)
    return TMI_FACTOR * (TMI_FACTOR * peak + math.log(scaled_sum / len(buckets)))


def calculate_tmi(
    events: Sequence[TMIEvent],
    bin_seconds: int,
    duration_seconds: float,
) -> float:
    """Compute the TMI of one iteration.

    Args:
        events: Time-ordered damage-taken log.
        bin_seconds: Window width; 0 disables the index.
        duration_seconds: Encounter duration.

    Returns:
        The index, or 0.0 when disabled or there is nothing to measure.

    Example:
        >>> calculate_tmi([], 6, 300.0)
        0.0
    """
    if not events or bin_seconds == 0:
        return 0.0
    return tmi_from_buckets(tmi_buckets(events, bin_seconds, duration_seconds))
