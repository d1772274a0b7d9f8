"""Scenario comparison report generator."""

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from vestcalc.models.reports import ScenarioComparison

TEMPLATE_DIR = Path(__file__).parent / "templates"


class ScenarioComparisonGenerator:
    """Generates a side-by-side comparison of what-if scenarios."""

    def __init__(self) -> None:
        self.env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)))

    def render(self, comparison: ScenarioComparison) -> str:
        """Render scenario comparison report."""
        template = self.env.get_template("scenario_comparison.txt")
        return template.render(c=comparison)
