"""
Document descriptions.

A document description is one self-contained YAML file per language holding
the CV content (``cv``), the presentation choices (``design``) and optional
locale strings (``locale``). The renderer owns the full schema; the checks here
cover the structure the pipeline relies on so that a malformed description
fails before the renderer is ever started.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from cvpress.exceptions import DescriptionValidationError

THEMES = (
    "classic",
    "sb2nov",
    "engineeringresumes",
    "engineeringclassic",
    "moderncv",
)
DEFAULT_THEME = "classic"

# Semantic roles that accept a color value
COLOR_ROLES = (
    "text",
    "name",
    "headline",
    "connections",
    "section_titles",
    "links",
    "footer",
    "top_note",
    "last_updated_date_and_page_numbers",
)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
RGB_COLOR_PATTERN = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*(\d*\.?\d+%?)\s*)?\)$"
)
HSL_COLOR_PATTERN = re.compile(
    r"^hsla?\(\s*(\d{1,3}(?:\.\d+)?)(?:deg)?\s*,\s*(\d{1,3}(?:\.\d+)?)%\s*,"
    r"\s*(\d{1,3}(?:\.\d+)?)%\s*(?:,\s*(\d*\.?\d+%?)\s*)?\)$"
)

# CSS Color Module Level 4 named colors
NAMED_COLORS = frozenset(
    """
    aliceblue antiquewhite aqua aquamarine azure beige bisque black
    blanchedalmond blue blueviolet brown burlywood cadetblue chartreuse
    chocolate coral cornflowerblue cornsilk crimson cyan darkblue darkcyan
    darkgoldenrod darkgray darkgreen darkgrey darkkhaki darkmagenta
    darkolivegreen darkorange darkorchid darkred darksalmon darkseagreen
    darkslateblue darkslategray darkslategrey darkturquoise darkviolet
    deeppink deepskyblue dimgray dimgrey dodgerblue firebrick floralwhite
    forestgreen fuchsia gainsboro ghostwhite gold goldenrod gray green
    greenyellow grey honeydew hotpink indianred indigo ivory khaki lavender
    lavenderblush lawngreen lemonchiffon lightblue lightcoral lightcyan
    lightgoldenrodyellow lightgray lightgreen lightgrey lightpink
    lightsalmon lightseagreen lightskyblue lightslategray lightslategrey
    lightsteelblue lightyellow lime limegreen linen magenta maroon
    mediumaquamarine mediumblue mediumorchid mediumpurple mediumseagreen
    mediumslateblue mediumspringgreen mediumturquoise mediumvioletred
    midnightblue mintcream mistyrose moccasin navajowhite navy oldlace
    olive olivedrab orange orangered orchid palegoldenrod palegreen
    paleturquoise palevioletred papayawhip peachpuff peru pink plum
    powderblue purple rebeccapurple red rosybrown royalblue saddlebrown
    salmon sandybrown seagreen seashell sienna silver skyblue slateblue
    slategray slategrey snow springgreen steelblue tan teal thistle tomato
    turquoise violet wheat white whitesmoke yellow yellowgreen
    """.split()
)


@dataclass
class DocumentDescription:
    """
    Parsed document description for one language.

    Attributes:
        language: Language code (e.g. "en"), taken from the file stem by default
        data: Plain-dict content of the YAML file
        source: Path the description was read from
    """

    language: str
    data: Dict[str, Any]
    source: Optional[Path] = None

    @property
    def cv(self) -> Dict[str, Any]:
        cv = self.data.get("cv") if isinstance(self.data, dict) else None
        return cv if isinstance(cv, dict) else {}

    @property
    def design(self) -> Dict[str, Any]:
        design = self.data.get("design") if isinstance(self.data, dict) else None
        return design if isinstance(design, dict) else {}

    @property
    def name(self) -> Optional[str]:
        return self.cv.get("name")

    @property
    def sections(self) -> Dict[str, list]:
        sections = self.cv.get("sections")
        return sections if isinstance(sections, dict) else {}

    @property
    def theme(self) -> str:
        return self.design.get("theme", DEFAULT_THEME)

    @property
    def colors(self) -> Dict[str, str]:
        colors = self.design.get("colors")
        return colors if isinstance(colors, dict) else {}


@dataclass
class DescriptionValidation:
    """
    Outcome of a structural check. Valid when no issues were found.

    Warnings flag content the renderer may ignore (e.g. an unknown color role)
    and never make a description invalid.
    """

    language: str
    source: Optional[Path] = None
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def raise_for_issues(self) -> None:
        if self.issues:
            raise DescriptionValidationError(self.source, self.issues)


def load_description(path: Path, language: Optional[str] = None) -> DocumentDescription:
    """
    Read a document description from YAML. Values are kept verbatim.

    Args:
        path: YAML file to read
        language: Language code (default: file stem, e.g. "pt" for pt.yaml)

    Raises:
        DescriptionValidationError: If the file is missing or is not parseable YAML
    """
    path = Path(path)
    language = language or path.stem

    if not path.is_file():
        raise DescriptionValidationError(path, [f"file not found: {path}"])

    try:
        conf = OmegaConf.load(path)
        # ${...} in CV text is content for the renderer, not an interpolation
        data = OmegaConf.to_container(conf, resolve=False)
    except yaml.YAMLError as e:
        raise DescriptionValidationError(path, [f"YAML syntax error: {e}"]) from e
    except OmegaConfBaseException as e:
        raise DescriptionValidationError(path, [f"unsupported YAML content: {e}"]) from e

    return DocumentDescription(language=language, data=data, source=path)


def _valid_alpha(alpha: Optional[str]) -> bool:
    if alpha is None:
        return True
    if alpha.endswith("%"):
        return float(alpha[:-1]) <= 100
    return float(alpha) <= 1


def is_valid_color(value: Any) -> bool:
    """
    CSS color as the renderer accepts it: a named color, hex (#RGB, #RGBA,
    #RRGGBB, #RRGGBBAA), rgb()/rgba() with channels in 0..255, or hsl()/hsla().
    """
    if not isinstance(value, str):
        return False
    value = value.strip().lower()
    if value in NAMED_COLORS or HEX_COLOR_PATTERN.match(value):
        return True

    match = RGB_COLOR_PATTERN.match(value)
    if match:
        red, green, blue, alpha = match.groups()
        return all(int(channel) <= 255 for channel in (red, green, blue)) and _valid_alpha(alpha)

    match = HSL_COLOR_PATTERN.match(value)
    if match:
        hue, saturation, lightness, alpha = match.groups()
        return (
            float(hue) <= 360
            and float(saturation) <= 100
            and float(lightness) <= 100
            and _valid_alpha(alpha)
        )
    return False


def _check_cv(cv: Any, issues: List[str]) -> None:
    if not isinstance(cv, dict):
        issues.append("'cv' must be a mapping with the CV content")
        return

    name = cv.get("name")
    if not isinstance(name, str) or not name.strip():
        issues.append("'cv.name' must be a non-empty string")

    email = cv.get("email")
    if email is not None and (not isinstance(email, str) or "@" not in email):
        issues.append(f"'cv.email' is not an email address: {email!r}")

    networks = cv.get("social_networks")
    if networks is not None:
        if not isinstance(networks, list):
            issues.append("'cv.social_networks' must be a list")
        else:
            for i, entry in enumerate(networks):
                if not isinstance(entry, dict) or not entry.get("network") or not entry.get("username"):
                    issues.append(f"'cv.social_networks[{i}]' needs 'network' and 'username'")

    sections = cv.get("sections")
    if sections is None:
        return
    if not isinstance(sections, dict):
        issues.append("'cv.sections' must be a mapping of section title to entries")
        return
    for title, entries in sections.items():
        if not isinstance(entries, list) or not entries:
            issues.append(f"section '{title}' must be a non-empty list of entries")


def _check_design(design: Any, issues: List[str], warnings: List[str]) -> None:
    if design is None:
        return
    if not isinstance(design, dict):
        issues.append("'design' must be a mapping")
        return

    theme = design.get("theme", DEFAULT_THEME)
    if theme not in THEMES:
        issues.append(f"'design.theme' must be one of {', '.join(THEMES)}; got {theme!r}")

    colors = design.get("colors")
    if colors is None:
        return
    if not isinstance(colors, dict):
        issues.append("'design.colors' must be a mapping of role to color")
        return
    for role, value in colors.items():
        if role not in COLOR_ROLES:
            warnings.append(f"unknown color role 'design.colors.{role}' is ignored")
        if not is_valid_color(value):
            issues.append(f"'design.colors.{role}' is not a valid color: {value!r}")


def validate_description(description: DocumentDescription) -> DescriptionValidation:
    """
    Structurally validate a document description without producing any output.

    Returns:
        DescriptionValidation listing every issue found (empty when valid) and any warnings
    """
    validation = DescriptionValidation(language=description.language, source=description.source)
    data = description.data

    if not isinstance(data, dict) or not data:
        validation.issues.append("description must be a non-empty mapping")
        return validation

    if "cv" not in data:
        validation.issues.append("missing required top-level key 'cv'")
    else:
        _check_cv(data["cv"], validation.issues)

    _check_design(data.get("design"), validation.issues, validation.warnings)

    locale = data.get("locale")
    if locale is not None and not isinstance(locale, dict):
        validation.issues.append("'locale' must be a mapping")

    return validation


def validate_file(path: Path, language: Optional[str] = None) -> DescriptionValidation:
    """Validate-only mode: load and check a description file, never raising for content issues."""
    try:
        description = load_description(path, language)
    except DescriptionValidationError as e:
        return DescriptionValidation(
            language=language or Path(path).stem, source=Path(path), issues=e.issues
        )
    return validate_description(description)
