"""
Guest statistics and spreadsheet export for the admin panel
"""

import io
from typing import Any, Dict, List

import pandas as pd

from bigday.schemas.config import BusConfig
from bigday.schemas.guest import AttendanceStatus, CompanionType, GuestGroup
from bigday.services.config_service import ConfigService
from bigday.services.guest_store import GuestRecordStore


def group_uses_bus(group: GuestGroup, bus: BusConfig) -> bool:
    """A group rides a bus when someone opted in and its stop names that bus"""
    stop = (group.bus_stop or "").strip()
    if not stop:
        return False
    anyone_opted_in = (
        group.bus_opt_in
        or group.primary_guest.bus_opt_in is True
        or any(c.bus_opt_in is True for c in group.companions)
    )
    if not anyone_opted_in:
        return False
    return stop in (bus.id, bus.label, f"Bus #{bus.number}")


def count_bus_passengers(groups: List[GuestGroup], bus: BusConfig) -> int:
    total = 0
    for group in groups:
        if not group_uses_bus(group, bus):
            continue
        members = [group.primary_guest.bus_opt_in] + [c.bus_opt_in for c in group.companions]
        # a member without an own choice follows the group
        total += sum(1 for choice in members if (group.bus_opt_in if choice is None else choice))
    return total


class ReportService:
    """Service for admin reporting"""

    def __init__(self, store: GuestRecordStore, config: ConfigService):
        self.store = store
        self.config = config

    def stats(self) -> Dict[str, Any]:
        groups = self.store.list_all()
        by_status = {s: 0 for s in AttendanceStatus}
        stats = {
            "totalGroups": len(groups),
            "totalPeople": 0,
            "confirmedAttendees": 0,
            "partners": 0,
            "children": 0,
        }
        for group in groups:
            by_status[group.attendance_status] += 1
            stats["totalPeople"] += 1 + len(group.companions)
            stats["confirmedAttendees"] += sum(1 for s in group.member_statuses() if s == AttendanceStatus.CONFIRMED)
            stats["partners"] += sum(1 for c in group.companions if c.type == CompanionType.PARTNER)
            stats["children"] += sum(1 for c in group.companions if c.type == CompanionType.CHILD)

        stats["confirmedGroups"] = by_status[AttendanceStatus.CONFIRMED]
        stats["pendingGroups"] = by_status[AttendanceStatus.PENDING]
        stats["declinedGroups"] = by_status[AttendanceStatus.DECLINED]

        buses = self.config.get_buses()
        stats["busPassengers"] = [
            {
                "busId": bus.id,
                "number": bus.number,
                "label": bus.label,
                "passengers": count_bus_passengers(groups, bus),
            }
            for bus in (buses.buses if buses else [])
        ]
        return stats

    def guest_list_rows(self) -> List[Dict[str, Any]]:
        """One row per person"""
        tables = self.config.get_tables()
        table_names = {t.id: t.name for t in tables.tables} if tables else {}

        rows = []
        for group in self.store.list_all():
            common = {
                "Group": group.id,
                "Table": table_names.get(group.table or "", group.table or ""),
                "Bus Stop": group.bus_stop if group.bus_opt_in else "",
            }
            primary = group.primary_guest
            rows.append({
                **common,
                "Name": primary.name,
                "Surname": primary.surname,
                "Role": "primary",
                "Age": None,
                "Attendance": primary.attendance_status.value,
                "Allergies": primary.allergy_text or "",
            })
            for companion in group.companions:
                rows.append({
                    **common,
                    "Name": companion.name,
                    "Surname": companion.surname,
                    "Role": companion.type.value,
                    "Age": companion.age,
                    "Attendance": companion.attendance_status.value,
                    "Allergies": companion.allergy_text or "",
                })
        return rows

    def export_guest_list_xlsx(self) -> bytes:
        """Export the guest list and a summary sheet to Excel"""
        columns = ["Group", "Name", "Surname", "Role", "Age", "Attendance", "Allergies", "Table", "Bus Stop"]
        df = pd.DataFrame(self.guest_list_rows(), columns=columns)

        stats = self.stats()
        summary = pd.DataFrame(
            [(k, v) for k, v in stats.items() if k != "busPassengers"]
            + [(f"Bus #{b['number']} passengers", b["passengers"]) for b in stats["busPassengers"]],
            columns=["Metric", "Value"],
        )

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Guest List')
            summary.to_excel(writer, index=False, sheet_name='Summary')

        return buffer.getvalue()
