from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


def format_montant(value) -> str:
    """25000 -> '25 000 $' (format québécois)."""
    if value in (None, ""):
        return ""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{n:,}".replace(",", " ") + " $"


def format_datetime(value, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if value is None:
        return ""
    return value.strftime(fmt)


env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
)
env.filters["montant"] = format_montant
env.filters["datetime"] = format_datetime


def render(template_name: str, **ctx) -> str:
    return env.get_template(template_name).render(**ctx)
