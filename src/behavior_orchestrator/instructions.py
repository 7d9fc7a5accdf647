"""
Instruction Text Classification

All natural-language pattern matching used by the orchestrator lives here:
field assignments for credential capture, check classification, quoted-text
expectations, auth behavior ids and login-page heuristics.
"""

import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from .main import CheckType


# Known auth behavior id patterns
AUTH_PATTERNS = ["sign-up", "signup", "sign-in", "signin", "sign-out", "signout", "invalid-sign-in"]

ACCOUNT_CREATION_PATTERNS = ["sign-up", "signup"]

# Behaviors exercising bad credentials must never receive real ones
INVALID_CREDENTIAL_MARKERS = ["invalid", "wrong"]

FIELD_ASSIGNMENT_PATTERN = re.compile(
    r"Type\s+[\"']([^\"']+)[\"']\s+into\s+(?:the\s+)?(.+)",
    re.IGNORECASE,
)

DETERMINISTIC_PATTERNS = [
    re.compile(r"^url\s+contains\s+", re.IGNORECASE),
    re.compile(r"^url\s+is\s+", re.IGNORECASE),
    re.compile(r"^page\s+title\s+is\s+", re.IGNORECASE),
    re.compile(r"^page\s+title\s+contains\s+", re.IGNORECASE),
    re.compile(r"^element\s+count\s+is\s+", re.IGNORECASE),
    re.compile(r"^input\s+value\s+is\s+", re.IGNORECASE),
    re.compile(r"^checkbox\s+is\s+checked", re.IGNORECASE),
]

EXPECTED_TEXT_PATTERNS = [
    re.compile(r"(?:the\s+text\s+)?[\"']([^\"']+)[\"']\s+(?:no\s+longer\s+)?appears", re.IGNORECASE),
    re.compile(r"(?:should\s+)?(?:see|show|display|contain)\s+[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(
        r"[\"']([^\"']+)[\"']\s+(?:is\s+)?(?:no\s+longer\s+)?(?:visible|shown|displayed)",
        re.IGNORECASE,
    ),
]

PROPERTY_CHECK_PATTERNS = [
    (re.compile(r"^url\s+contains\s+(.+)$", re.IGNORECASE), "url", "contains"),
    (re.compile(r"^url\s+is\s+(.+)$", re.IGNORECASE), "url", "equals"),
    (re.compile(r"^page\s+title\s+is\s+(.+)$", re.IGNORECASE), "title", "equals"),
    (re.compile(r"^page\s+title\s+contains\s+(.+)$", re.IGNORECASE), "title", "contains"),
]

NEGATION_MARKERS = ["no longer", "not ", "doesn't", "does not"]

LOGIN_PATH_PATTERN = re.compile(r"/(sign[-_]?in|login|auth)")
LOGIN_TITLE_PATTERN = re.compile(r"sign in|login")
ERROR_TITLE_PATTERN = re.compile(r"error|404|not found")

PATH_PARAM_PATTERN = re.compile(r":\w+")

RETRYABLE_ERROR_PATTERN = re.compile(
    r"schema|No object generated|rate|timeout|ECONNRESET|ETIMEDOUT",
    re.IGNORECASE,
)


@dataclass
class FieldAssignment:
    """A parsed "Type <value> into <field>" instruction"""
    value: str
    field: str

    @property
    def credential_slot(self) -> Optional[str]:
        """Which credential this assignment sets, if any"""
        if "email" in self.field:
            return "email"
        if "password" in self.field:
            return "password"
        return None


@dataclass
class ExpectedText:
    """Quoted text a check expects to be present or absent"""
    text: str
    should_exist: bool


@dataclass
class PropertyCheck:
    """A deterministic comparison against a page property"""
    subject: str  # "url" or "title"
    operator: str  # "contains" or "equals"
    expected: str

    def evaluate(self, actual: str) -> bool:
        if self.operator == "contains":
            return self.expected in actual
        return actual == self.expected


def parse_field_assignment(instruction: str) -> Optional[FieldAssignment]:
    match = FIELD_ASSIGNMENT_PATTERN.search(instruction)
    if not match:
        return None
    return FieldAssignment(value=match.group(1).strip(), field=match.group(2).strip().lower())


def classify_check(instruction: str) -> CheckType:
    """Classify a check as deterministic (page-property comparison) or semantic"""
    trimmed = instruction.strip()
    for pattern in DETERMINISTIC_PATTERNS:
        if pattern.search(trimmed):
            return CheckType.DETERMINISTIC
    return CheckType.SEMANTIC


def parse_property_check(instruction: str) -> Optional[PropertyCheck]:
    """Parse 'URL contains X', 'URL is X', 'Page title is X' or 'Page title contains X'"""
    trimmed = instruction.strip()
    for pattern, subject, operator in PROPERTY_CHECK_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            expected = match.group(1).strip()
            if len(expected) >= 2 and expected[0] == expected[-1] and expected[0] in "\"'":
                expected = expected[1:-1]
            return PropertyCheck(subject=subject, operator=operator, expected=expected)
    return None


def extract_expected_text(instruction: str) -> Optional[ExpectedText]:
    """
    Reduce a check to quoted-text containment when possible.

    'The text "Saved" appears' -> ExpectedText("Saved", True)
    '"Draft" is no longer visible' -> ExpectedText("Draft", False)
    """
    for pattern in EXPECTED_TEXT_PATTERNS:
        match = pattern.search(instruction)
        if match:
            outside = (instruction[:match.start(1)] + instruction[match.end(1):]).lower()
            should_exist = not any(marker in outside for marker in NEGATION_MARKERS)
            return ExpectedText(text=match.group(1), should_exist=should_exist)
    return None


def is_auth_behavior(behavior_id: str) -> bool:
    lower = behavior_id.lower()
    return any(pattern in lower for pattern in AUTH_PATTERNS)


def is_account_creation_behavior(behavior_id: str) -> bool:
    lower = behavior_id.lower()
    return any(pattern in lower for pattern in ACCOUNT_CREATION_PATTERNS)


def is_invalid_credentials_behavior(behavior_id: str, title: str = "") -> bool:
    text = f"{behavior_id} {title}".lower()
    return any(marker in text for marker in INVALID_CREDENTIAL_MARKERS)


def is_retryable_error(message: str) -> bool:
    """Transient executor errors worth another attempt"""
    return bool(RETRYABLE_ERROR_PATTERN.search(message))


# =========================================================================
# Locations
# =========================================================================

def strip_trailing_slash(value: str) -> str:
    return value[:-1] if value.endswith("/") else value


def urls_match(a: str, b: str) -> bool:
    """Compare URLs ignoring a trailing slash"""
    return strip_trailing_slash(a) == strip_trailing_slash(b)


def url_path(url: str) -> str:
    try:
        return urlparse(url).path or "/"
    except ValueError:
        return url


def is_parameterized_path(path: str) -> bool:
    return bool(PATH_PARAM_PATTERN.search(path))


def path_matches(current_path: str, target_path: str) -> bool:
    """Match a concrete path against a target whose :param segments are wildcards"""
    current = strip_trailing_slash(current_path).split("/")
    target = strip_trailing_slash(target_path).split("/")
    if len(current) != len(target):
        return False
    for actual, expected in zip(current, target):
        if expected.startswith(":"):
            if not actual:
                return False
            continue
        if actual != expected:
            return False
    return True


def is_child_path(current_path: str, target_path: str) -> bool:
    """True when current_path lies strictly below target_path"""
    current = strip_trailing_slash(current_path)
    target = strip_trailing_slash(target_path)
    if not target:
        return False
    return current.startswith(target + "/")


def looks_like_login_page(url: str, title: str = "") -> bool:
    if LOGIN_PATH_PATTERN.search(url_path(url).lower()):
        return True
    return bool(LOGIN_TITLE_PATTERN.search(title.lower()))


def is_sign_in_redirect(current_url: str, target_url: str, title: str = "") -> bool:
    """Detect that navigating to target_url landed on a sign-in page instead"""
    if urls_match(current_url, target_url):
        return False
    return looks_like_login_page(current_url, title)


def page_state_warning(url: str, title: str) -> str:
    """Short warning describing a suspicious page, or empty string"""
    if looks_like_login_page(url, title):
        return "WARNING: Page appears to be a login page - session may have expired."
    if ERROR_TITLE_PATTERN.search(title.lower()):
        return "WARNING: Page appears to be an error page."
    return ""


def describe_elements(elements: List[str], limit: int = 10) -> str:
    if not elements:
        return ""
    return f" Visible elements: [{', '.join(elements[:limit])}]."
