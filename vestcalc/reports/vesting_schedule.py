"""Vesting schedule report generator."""

from datetime import date
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from vestcalc.models.equity import GrantLedger, VestingEvent

TEMPLATE_DIR = Path(__file__).parent / "templates"


class VestingReportGenerator:
    """Renders each grant's vesting events with running vested totals."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

    def render(
        self, schedules: list[tuple[GrantLedger, list[VestingEvent]]], as_of: date
    ) -> str:
        grants = []
        for ledger, events in schedules:
            rows = []
            cumulative = 0
            for event in events:
                if event.status == "vested":
                    cumulative += event.quantity
                rows.append({"event": event, "cumulative": cumulative})
            grants.append({"ledger": ledger, "rows": rows, "vested": cumulative})

        template = self.env.get_template("vesting_schedule.txt")
        return template.render(grants=grants, as_of=as_of)
