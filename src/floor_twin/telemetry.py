"""Telemetry recorder: turns the snapshot stream into a pandas DataFrame."""

from typing import Any, Dict, List, Optional

import pandas as pd

from floor_twin.bus import Subscription
from floor_twin.models import ProductionSystem, StationStatus


def snapshot_row(snapshot: ProductionSystem) -> Dict[str, Any]:
    """Flatten one snapshot into a telemetry record."""
    row: Dict[str, Any] = {
        "sim_time": snapshot.sim_time,
        "machine_status": snapshot.machine.status.value,
        "in_transit": len(snapshot.components_in_transit),
        "at_machine": len(snapshot.components_at(snapshot.machine.id)),
        "spawned_total": snapshot.spawned_total,
        "delivered_total": snapshot.delivered_total,
        "dropped_spawns": snapshot.dropped_spawns,
        "route_active": snapshot.transport_route.is_active,
    }
    stations = (*snapshot.switches, *snapshot.consumers)
    for status in StationStatus:
        row[f"stations_{status.value.lower()}"] = sum(
            1 for s in stations if s.status == status
        )
    return row


class TelemetryRecorder:
    """Collects broadcast snapshots from a subscription.

    Call ``collect()`` periodically (or once at the end with a large enough
    mailbox) and ``to_frame()`` for analysis.
    """

    def __init__(self, subscription: Subscription[ProductionSystem]):
        self.subscription = subscription
        self.rows: List[Dict[str, Any]] = []
        self.last: Optional[ProductionSystem] = None

    def collect(self) -> int:
        """Drain pending snapshots. Returns how many were recorded."""
        snapshots = self.subscription.drain()
        for snapshot in snapshots:
            self.rows.append(snapshot_row(snapshot))
            self.last = snapshot
        return len(snapshots)

    def to_frame(self) -> pd.DataFrame:
        """Recorded telemetry, one row per broadcast."""
        return pd.DataFrame(self.rows, columns=_columns())

    def summary(self) -> Dict[str, Any]:
        """Headline figures over the recorded window."""
        df = self.to_frame()
        if df.empty:
            return {"broadcasts": 0}

        # Share of broadcasts per machine status
        status_share = df["machine_status"].value_counts(normalize=True) * 100
        return {
            "broadcasts": len(df),
            "sim_time": float(df["sim_time"].iloc[-1]),
            "spawned": int(df["spawned_total"].iloc[-1]),
            "delivered": int(df["delivered_total"].iloc[-1]),
            "dropped": int(df["dropped_spawns"].iloc[-1]),
            "max_in_transit": int(df["in_transit"].max()),
            "machine_status_pct": status_share.round(1).to_dict(),
            "lost_broadcasts": self.subscription.dropped,
        }


def _columns() -> List[str]:
    base = [
        "sim_time",
        "machine_status",
        "in_transit",
        "at_machine",
        "spawned_total",
        "delivered_total",
        "dropped_spawns",
        "route_active",
    ]
    return base + [f"stations_{s.value.lower()}" for s in StationStatus]
