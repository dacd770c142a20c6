"""Species name helpers shared by the lookup service, worker and providers.

Three concerns live here:

1. **Display-name fallback** -- when no common name is known, derive a
   rough one from the eBird species code ("mallar3" -> "Mallar").  It is a
   best-effort label for search queries and logs, not a real name.

2. **Hybrid detection** -- hybrid taxa ("Mallard x American Black Duck",
   "Some Bird (hybrid)") rarely have a dedicated encyclopedia page, so the
   enrichment worker skips them rather than spend provider quota.

3. **Title encoding** -- encyclopedia page titles use underscores for
   spaces and must be percent-encoded in the request path.
"""

import re
from urllib.parse import quote

_TRAILING_DIGITS_RE = re.compile(r"[0-9]+$")

_HYBRID_PATTERNS = (
    re.compile(r"\s+x\s+", re.IGNORECASE),     # "Blue-winged x Cinnamon Teal"
    re.compile(r"\(hybrid\)", re.IGNORECASE),  # "(hybrid)" suffix
    re.compile(r"\bhybrid\s+", re.IGNORECASE),  # "hybrid " prefix
)

_EBIRD_SPECIES_URL = "https://ebird.org/species/{code}"


def derive_display_name(species_code: str) -> str:
    """Derive a human-readable name from an eBird species code.

    Strips trailing digits and title-cases the remainder.  Codes of three
    characters or fewer, or whose remainder is shorter than three
    characters, yield ``""``.

    Args:
        species_code: eBird species code, e.g. ``"mallar3"``.

    Returns:
        The derived name (``"Mallar"``) or an empty string.
    """
    code = species_code.strip()
    if len(code) <= 3:
        return ""
    name_part = _TRAILING_DIGITS_RE.sub("", code)
    if len(name_part) < 3:
        return ""
    return name_part.title()


def is_hybrid_species(com_name: str | None, sci_name: str | None) -> bool:
    """Return ``True`` if either name matches a hybrid-species pattern."""
    names = [n for n in (com_name, sci_name) if n]
    return any(pattern.search(name) for pattern in _HYBRID_PATTERNS for name in names)


def encode_page_title(name: str) -> str:
    """Encode a species name as an encyclopedia page title path segment.

    ``"Anas platyrhynchos"`` becomes ``"Anas_platyrhynchos"``; reserved
    characters (including ``/``) are percent-encoded.
    """
    return quote(name.strip().replace(" ", "_"), safe="")


def ebird_species_url(species_code: str) -> str:
    """Return the public eBird species page URL for *species_code*."""
    return _EBIRD_SPECIES_URL.format(code=species_code)
