import re

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def clean_required(v, label: str):
    if v is None:
        raise ValueError(f"{label} requis")
    v = str(v).strip()
    if not v:
        raise ValueError(f"{label} requis")
    return v


def clean_email(v, label: str = "Courriel"):
    v = clean_required(v, label)
    if not EMAIL_RE.match(v):
        raise ValueError(f"{label} invalide")
    return v


def parse_oui_non(v):
    """Le formulaire envoie 'yes'/'no' ; on accepte aussi les booléens."""
    if isinstance(v, bool) or v is None:
        return bool(v)
    return str(v).strip().lower() in {"yes", "oui", "true", "1", "on"}
