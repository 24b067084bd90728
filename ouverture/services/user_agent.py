import re

_TABLET_RE = re.compile(r"(tablet|ipad|playbook|silk)|(android(?!.*mobi))", re.IGNORECASE)
_MOBILE_RE = re.compile(r"Mobile|iP(hone|od)|Android|BlackBerry|IEMobile|Kindle|Silk-Accelerated|(hpw|web)OS|Opera M(obi|ini)")

# L'ordre compte : Edge et Opera contiennent aussi "Chrome", Chrome contient "Safari"
_BROWSERS = [
    ("Firefox", ("Firefox",)),
    ("Samsung", ("SamsungBrowser",)),
    ("Opera", ("Opera", "OPR")),
    ("IE", ("Trident",)),
    ("Edge", ("Edge", "Edg")),
    ("Chrome", ("Chrome",)),
    ("Safari", ("Safari",)),
]

# Android et iOS avant Linux/Mac : leurs UA contiennent "Linux" / "like Mac OS X"
_SYSTEMS = [
    ("Windows", ("Win",)),
    ("Android", ("Android",)),
    ("iOS", ("iPhone", "iPad", "iPod", "iOS")),
    ("MacOS", ("Mac",)),
    ("Linux", ("Linux",)),
]


def device_type(ua: str | None) -> str:
    ua = ua or ""
    if _TABLET_RE.search(ua):
        return "tablet"
    if _MOBILE_RE.search(ua):
        return "mobile"
    return "desktop"


def _first_match(ua: str | None, table) -> str:
    ua = ua or ""
    for name, needles in table:
        if any(n in ua for n in needles):
            return name
    return "Unknown"


def browser(ua: str | None) -> str:
    return _first_match(ua, _BROWSERS)


def operating_system(ua: str | None) -> str:
    return _first_match(ua, _SYSTEMS)


def classify(ua: str | None) -> dict:
    return {"device_type": device_type(ua), "browser": browser(ua), "os": operating_system(ua)}
