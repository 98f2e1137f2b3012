"""Project scan: where custom triggers, weighted branches and self-scoped data are used."""

from __future__ import annotations

from .data_loader import DataLoader
from .database import Database
from .triggers import TriggerKind, find_custom_page_trigger
from .weighted_branch import WeightBranchTable

_TRIGGER_LABELS = {
    TriggerKind.REGION_ENTRY: "region entry",
    TriggerKind.PARTY_TOUCH: "party touch",
    TriggerKind.MAP_SETUP: "map setup",
}


class ScanService:
    def __init__(self, loader: DataLoader, db: Database):
        self.loader = loader
        self.db = db

    @staticmethod
    def _describe_list(command_list):
        info = {"trigger": None, "weight_sets": 0}
        descriptor = find_custom_page_trigger(command_list)
        if descriptor is not None:
            label = _TRIGGER_LABELS[descriptor.kind]
            if descriptor.region_id is not None:
                label = f"{label} (region {descriptor.region_id})"
            info["trigger"] = label
        table = WeightBranchTable.build(command_list)
        info["weight_sets"] = len(table.sets)
        return info

    def scan_map(self, map_id: int):
        data = self.loader.load_map(map_id)
        rows = []
        if not isinstance(data, dict):
            return rows
        for evt in data.get("events") or []:
            if not evt or not isinstance(evt, dict):
                continue
            for page_index, page in enumerate(evt.get("pages") or []):
                if not isinstance(page, dict):
                    continue
                info = self._describe_list(page.get("list") or [])
                if info["trigger"] is None and not info["weight_sets"]:
                    continue
                rows.append({
                    "source": f"Map{map_id:03d} {self.db.get_map_name(map_id)}",
                    "owner": f"EV{int(evt.get('id', 0)):03d} {evt.get('name', '')}".rstrip(),
                    "page": page_index + 1,
                    **info,
                })
        return rows

    def scan_common_events(self):
        rows = []
        for ce_id in self.db.common_event_ids():
            ce = self.db.get_common_event(ce_id) or {}
            info = self._describe_list(ce.get("list") or [])
            if info["trigger"] is None and not info["weight_sets"]:
                continue
            rows.append({
                "source": "CommonEvents",
                "owner": f"CE{ce_id:03d} {ce.get('name', '')}".rstrip(),
                "page": None,
                **info,
            })
        return rows

    def scan(self):
        rows = []
        for map_id in self.loader.map_ids():
            rows.extend(self.scan_map(map_id))
        rows.extend(self.scan_common_events())
        return {
            "events": rows,
            "self_switches": {i: self.db.switch_names[i] for i in sorted(self.db.self_switch_ids)},
            "self_variables": {i: self.db.variable_names[i] for i in sorted(self.db.self_variable_ids)},
        }

    @staticmethod
    def to_text(report) -> str:
        lines = ["Custom triggers and weighted branches", "-" * 40]
        if not report["events"]:
            lines.append("(none)")
        for row in report["events"]:
            page = f" page {row['page']}" if row["page"] else ""
            parts = []
            if row["trigger"]:
                parts.append(f"trigger: {row['trigger']}")
            if row["weight_sets"]:
                parts.append(f"weighted sets: {row['weight_sets']}")
            lines.append(f"{row['source']} / {row['owner']}{page}: {', '.join(parts)}")

        for title, names in (("Self-scoped switches", report["self_switches"]),
                             ("Self-scoped variables", report["self_variables"])):
            lines.append("")
            lines.append(title)
            lines.append("-" * 40)
            if not names:
                lines.append("(none)")
            for item_id, name in names.items():
                lines.append(f"#{item_id:04d} {name}")
        return "\n".join(lines)
