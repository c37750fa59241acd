"""
Font utilities for caption rendering.

Maps the abstract font tokens used in styles (CSS variables or family lists
such as ``"Helvetica, Arial, sans-serif"``) to font files on disk. Everything
is resolved locally; nothing is downloaded.
"""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Project fonts directory (fonts/ at repo root), searched first when present
DEFAULT_FONTS_DIR = Path(__file__).parent.parent.parent / "fonts"

SYSTEM_FONT_DIRS = [
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("/Library/Fonts"),
    Path.home() / "Library/Fonts",
    Path.home() / ".fonts",
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
    Path("C:/Windows/Fonts"),
]

# CSS custom properties used by the style picker -> concrete family names
CSS_FONT_VARIABLES = {
    "var(--font-bangers)": "Bangers",
    "var(--font-montserrat)": "Montserrat",
    "var(--font-inter)": "Inter",
    "var(--font-bebas-neue)": "Bebas Neue",
    "var(--font-poppins)": "Poppins",
    "var(--font-open-sans)": "Open Sans",
    "var(--font-oswald)": "Oswald",
    "var(--font-anton)": "Anton",
    "var(--font-fredoka)": "Fredoka",
    "var(--font-righteous)": "Righteous",
    "var(--font-nunito)": "Nunito",
    "var(--font-roboto)": "Roboto",
}

GENERIC_FAMILIES = {"sans-serif", "serif", "monospace", "system-ui", "cursive", "fantasy"}

# Tried in order when no family in the token can be found
SANS_SERIF_FALLBACKS = [
    "DejaVu Sans",
    "Liberation Sans",
    "Arial",
    "Helvetica",
    "FreeSans",
    "Noto Sans",
]

FONT_SUFFIXES = (".ttf", ".otf", ".ttc")


def normalize_font_name(font_name: str) -> str:
    """Normalize font name for lookup."""
    return font_name.lower().replace(" ", "").replace("-", "").replace("_", "")


def resolve_font_families(token: str) -> list[str]:
    """
    Turn a font token into an ordered list of candidate family names.

    CSS variables are replaced with the family they stand for; an unknown
    variable is dropped and the rest of the list is used. An empty result
    means "generic sans-serif".
    """
    value = token.strip()

    for css_var, family in CSS_FONT_VARIABLES.items():
        if css_var in value:
            value = value.replace(css_var, family)
            break

    families = []
    for part in value.split(","):
        family = part.strip().strip("'\"").strip()
        if not family or family.startswith("var("):
            continue
        if family.lower() in GENERIC_FAMILIES:
            continue
        families.append(family)

    return families


def _search_dirs(extra_dirs: Optional[list[Path]] = None) -> list[Path]:
    dirs = []
    if DEFAULT_FONTS_DIR.exists():
        dirs.append(DEFAULT_FONTS_DIR)
    if extra_dirs:
        dirs.extend(Path(d) for d in extra_dirs)
    dirs.extend(SYSTEM_FONT_DIRS)
    return [d for d in dirs if d.exists()]


def _rank_match(path: Path, normalized: str, bold: bool) -> int:
    stem = normalize_font_name(path.stem)
    if bold:
        if stem in (normalized + "bold", normalized + "bd", normalized + "b"):
            return 0
        if "bold" in stem and "italic" not in stem and "oblique" not in stem:
            return 1
    else:
        if stem == normalized or stem == normalized + "regular":
            return 0
        if "regular" in stem:
            return 1
    if stem == normalized:
        return 2
    if "italic" in stem or "oblique" in stem:
        return 4
    return 3


def find_font_file(
    font_name: str,
    bold: bool = False,
    search_dirs: Optional[list[Path]] = None,
) -> Optional[Path]:
    """
    Find a font file by family name.

    Args:
        font_name: Family name or direct path to a font file
        bold: Prefer a bold face when several files match
        search_dirs: Additional directories to search before system fonts

    Returns:
        Path to font file if found, None otherwise
    """
    font_path = Path(font_name)
    if font_path.suffix.lower() in FONT_SUFFIXES and font_path.exists():
        return font_path

    normalized = normalize_font_name(font_name)
    if not normalized:
        return None

    for search_dir in _search_dirs(search_dirs):
        matches = [
            path for path in search_dir.rglob("*")
            if path.suffix.lower() in FONT_SUFFIXES
            and normalize_font_name(path.stem).startswith(normalized)
        ]
        if matches:
            matches.sort(key=lambda p: (_rank_match(p, normalized, bold), len(p.stem)))
            return matches[0]

    return None


def resolve_font_path(
    token: str,
    bold: bool = False,
    search_dirs: Optional[list[Path]] = None,
) -> Optional[Path]:
    """
    Resolve a style font token to a font file.

    Tries every family named in the token, then the generic sans-serif
    fallbacks. Returns None when nothing usable is installed.
    """
    for family in resolve_font_families(token):
        path = find_font_file(family, bold=bold, search_dirs=search_dirs)
        if path:
            logger.debug(f"Resolved font '{family}' -> {path}")
            return path

    for family in SANS_SERIF_FALLBACKS:
        path = find_font_file(family, bold=bold, search_dirs=search_dirs)
        if path:
            logger.info(f"Font token '{token}' not found, using sans-serif fallback: {path}")
            return path

    logger.warning(f"No font file found for '{token}'")
    return None
