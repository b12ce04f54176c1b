"""Deep-link parameter helpers.

A position inside a story is addressed by a small set of parameters,
``storyId``, ``surah``, ``from`` and ``to``, encoded like a URL query or
fragment.  The player accepts such a string on the command line
(``--link "storyId=yusuf&surah=12&from=4&to=6"``) and shows it in the
window so it can be copied.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode


def _parse(part: Optional[str]) -> Dict[str, str]:
    if not part:
        return {}
    if part[0] in "?#":
        part = part[1:]
    return dict(parse_qsl(part, keep_blank_values=True))


def parse_link_params(query: Optional[str] = None, fragment: Optional[str] = None) -> Dict[str, str]:
    """Merge query and fragment parameters; the fragment takes precedence."""
    out = _parse(query)
    out.update(_parse(fragment))
    return out


def build_link(params: Mapping[str, object]) -> str:
    """Encode *params* in insertion order, skipping ``None`` values."""
    return urlencode([(k, str(v)) for k, v in params.items() if v is not None])


def link_int(params: Mapping[str, str], key: str) -> Optional[int]:
    """Return ``params[key]`` as an int, or ``None`` if missing or not numeric."""
    value = params.get(key)
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
