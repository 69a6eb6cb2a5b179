"""Best-effort split of report text into per-species sections."""

import re
from typing import Iterable, Optional

SPECIES_ALIASES = {
    "bass": ("smallmouth bass", "largemouth bass", "smallmouth", "largemouth", "micropterus", "bass"),
    "walleye": ("walleyed pike", "sander vitreus", "walleyes", "walleye"),
    "musky": ("muskellunge", "esox masquinongy", "muskies", "musky", "muskie"),
    "perch": ("yellow perch", "perca flavescens", "perch"),
    "crappie": ("black crappie", "white crappie", "crappies", "crappie"),
    "bluegill": ("bluegill/sunfish", "bluegills", "bluegill", "sunfish", "panfish"),
    "pike": ("northern pike", "pike"),
}

# "## Walleye", "- Walleye", "**Walleye:**", "Walleye:"
_LABEL_LINE_RE = re.compile(
    r"^\s*(?:#{1,6}\s*|[-*•]\s+)?(?:\*\*|__)?\s*(?P<label>[A-Za-z][A-Za-z /&'-]{1,40}?)\s*:?\s*(?:\*\*|__)?\s*:?\s*$"
)
# "**Walleye:** Trolling crawler harnesses..."
_INLINE_LABEL_RE = re.compile(
    r"^\s*(?:[-*•]\s+)?(?:\*\*|__)(?P<label>[^*_]{2,40}?):?(?:\*\*|__):?\s*(?P<rest>.+)$"
)
_HEADING_RE = re.compile(r"^\s*(?:#{1,6}\s+\S|\*\*[^*]+\*\*\s*$)")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def species_for_label(label: str) -> Optional[str]:
    """Canonical species for a heading label, if it names one."""
    cleaned = label.strip().lower().rstrip(":").strip()
    for species, aliases in SPECIES_ALIASES.items():
        if cleaned in aliases:
            return species
        # "Walleye Report", "Smallmouth Bass Fishing"
        for alias in aliases:
            if cleaned.startswith(alias + " ") and len(cleaned.split()) <= len(alias.split()) + 2:
                return species
    return None


def _match_header(line: str) -> tuple[Optional[str], str, bool]:
    """(species, trailing text, is_heading) for one line."""
    inline = _INLINE_LABEL_RE.match(line)
    if inline:
        species = species_for_label(inline.group("label"))
        if species:
            return species, inline.group("rest").strip(), True
    label = _LABEL_LINE_RE.match(line)
    if label:
        species = species_for_label(label.group("label"))
        if species:
            return species, "", True
    is_heading = bool(_HEADING_RE.match(line)) or line.strip().lower().startswith(
        "current conditions"
    )
    return None, "", is_heading


def _structured_sections(content: str) -> dict[str, str]:
    sections: dict[str, list[str]] = {}
    current: Optional[str] = None

    for line in content.splitlines():
        species, rest, is_heading = _match_header(line)
        if species:
            current = species
            sections.setdefault(current, [])
            if rest:
                sections[current].append(rest)
        elif is_heading:
            current = None
        elif current:
            sections[current].append(line)

    result = {}
    for species, lines in sections.items():
        text = "\n".join(lines).strip()
        if text:
            result[species] = text
    return result


def _alias_pattern(species: str) -> re.Pattern:
    aliases = sorted(SPECIES_ALIASES.get(species, (species,)), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(a) for a in aliases) + r")\b", re.IGNORECASE)


def _keyword_sentences(content: str, species: str) -> Optional[str]:
    pattern = _alias_pattern(species)
    flat = " ".join(line.strip() for line in content.splitlines() if line.strip())
    hits = [s for s in _SENTENCE_SPLIT_RE.split(flat) if pattern.search(s)]
    return " ".join(hits) if hits else None


def extract_species(content: str, species: str) -> Optional[str]:
    """Text about one species: its own section, else the sentences naming it."""
    species = species.lower()
    structured = _structured_sections(content)
    if species in structured:
        return structured[species]
    return _keyword_sentences(content, species)


def parse_sections(content: str, species: Optional[Iterable[str]] = None) -> dict[str, str]:
    """Map each species found in ``content`` to the text about it.

    Headings, bullet labels and bold labels mark structured sections. Species
    without a section fall back to keyword-matched sentences. Species that
    are never mentioned are left out.
    """
    wanted = [s.lower() for s in (species or SPECIES_ALIASES)]
    structured = _structured_sections(content)
    result = {}
    for name in wanted:
        text = structured.get(name) or _keyword_sentences(content, name)
        if text:
            result[name] = text
    return result
