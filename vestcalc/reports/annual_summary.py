"""Annual tax summary report generator."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from vestcalc.models.reports import AnnualSummary, EquityTaxSummary

TEMPLATE_DIR = Path(__file__).parent / "templates"


class AnnualSummaryGenerator:
    """Generates a human-readable annual tax summary."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

    def render(self, summary: AnnualSummary) -> str:
        """Render annual tax summary report."""
        template = self.env.get_template("annual_summary.txt")
        return template.render(s=summary)

    def render_equity(self, summary: EquityTaxSummary) -> str:
        """Render the per-year equity tax summary."""
        template = self.env.get_template("equity_summary.txt")
        return template.render(s=summary)
