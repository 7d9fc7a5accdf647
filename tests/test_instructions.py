"""
Tests for instruction text classification and location helpers
"""

import pytest

from behavior_orchestrator.instructions import (
    classify_check,
    extract_expected_text,
    is_account_creation_behavior,
    is_auth_behavior,
    is_child_path,
    is_invalid_credentials_behavior,
    is_parameterized_path,
    is_retryable_error,
    is_sign_in_redirect,
    looks_like_login_page,
    page_state_warning,
    parse_field_assignment,
    parse_property_check,
    path_matches,
    urls_match,
)
from behavior_orchestrator.main import CheckType, Step, StepKind


class TestFieldAssignment:
    """Tests for parse_field_assignment"""

    def test_parses_value_and_field(self):
        """Value and field descriptor should be extracted"""
        assignment = parse_field_assignment('Type "alice@example.com" into the Email field')
        assert assignment.value == "alice@example.com"
        assert assignment.field == "email field"
        assert assignment.credential_slot == "email"

    def test_password_slot(self):
        """Password fields map to the password slot"""
        assignment = parse_field_assignment("Type 'pw' into the password input")
        assert assignment.credential_slot == "password"

    def test_other_field_has_no_slot(self):
        """Non-credential fields carry no slot"""
        assert parse_field_assignment('Type "Buy milk" into the task title').credential_slot is None

    def test_not_an_assignment(self):
        """Clicks are not assignments"""
        assert parse_field_assignment("Click the save button") is None


class TestCheckClassification:
    """Tests for classify_check and parse_property_check"""

    @pytest.mark.parametrize("instruction", [
        "URL contains /dashboard",
        "url is http://localhost:3000/",
        "Page title is Dashboard",
        "page title contains Tasks",
        "Element count is 3",
        "Input value is hello",
        "Checkbox is checked",
    ])
    def test_deterministic(self, instruction):
        """Page-property comparisons should be deterministic"""
        assert classify_check(instruction) == CheckType.DETERMINISTIC

    @pytest.mark.parametrize("instruction", [
        "The dashboard shows a welcome message",
        "The new task appears in the list",
        "The URL should now point to the dashboard",
    ])
    def test_semantic(self, instruction):
        """Everything else is judged semantically"""
        assert classify_check(instruction) == CheckType.SEMANTIC

    def test_step_check_classifies(self):
        """Step.check should classify when no type is given"""
        step = Step.check("URL contains /tasks")
        assert step.kind == StepKind.CHECK
        assert step.check_type == CheckType.DETERMINISTIC
        assert Step.check("A toast appears").check_type == CheckType.SEMANTIC

    def test_parse_url_contains(self):
        """URL contains should parse to a containment check"""
        check = parse_property_check("URL contains /dashboard")
        assert (check.subject, check.operator, check.expected) == ("url", "contains", "/dashboard")
        assert check.evaluate("http://localhost:3000/dashboard")
        assert not check.evaluate("http://localhost:3000/login")

    def test_parse_strips_quotes(self):
        """Quoted expectations should be unquoted"""
        check = parse_property_check('Page title is "My Tasks"')
        assert check.subject == "title"
        assert check.operator == "equals"
        assert check.expected == "My Tasks"
        assert check.evaluate("My Tasks")
        assert not check.evaluate("My Tasks - Home")

    def test_unparsed_deterministic(self):
        """Deterministic checks without a property comparison do not parse"""
        assert parse_property_check("Element count is 3") is None


class TestExpectedText:
    """Tests for extract_expected_text"""

    def test_appears(self):
        """Quoted text that appears should be expected present"""
        expected = extract_expected_text('The text "Saved" appears')
        assert expected.text == "Saved"
        assert expected.should_exist

    def test_no_longer_visible(self):
        """Negated checks should expect absence"""
        expected = extract_expected_text('"Draft" is no longer visible')
        assert expected.text == "Draft"
        assert not expected.should_exist

    def test_negation_inside_quotes_ignored(self):
        """Negation words inside the quoted text do not flip the expectation"""
        expected = extract_expected_text('Page shows "Do not disturb"')
        assert expected.text == "Do not disturb"
        assert expected.should_exist

    def test_should_see(self):
        """'should see' phrasing is recognized"""
        assert extract_expected_text("You should see 'Welcome back'").text == "Welcome back"

    def test_unquoted(self):
        """Checks without quoted text cannot be reduced"""
        assert extract_expected_text("The dashboard is shown") is None


class TestBehaviorIds:
    """Tests for auth-related id classification"""

    @pytest.mark.parametrize("behavior_id", [
        "sign-up", "sign-in", "sign-out", "invalid-sign-in", "user-signup", "SignIn-Flow",
    ])
    def test_auth_ids(self, behavior_id):
        """Auth ids are recognized case-insensitively"""
        assert is_auth_behavior(behavior_id)

    def test_non_auth_id(self):
        """Ordinary behaviors are not auth"""
        assert not is_auth_behavior("create-task")

    def test_account_creation(self):
        """Only sign-up style ids create accounts"""
        assert is_account_creation_behavior("sign-up")
        assert is_account_creation_behavior("signup-with-google")
        assert not is_account_creation_behavior("sign-in")

    def test_invalid_credentials(self):
        """Invalid-credential behaviors match on id or title"""
        assert is_invalid_credentials_behavior("invalid-sign-in")
        assert is_invalid_credentials_behavior("sign-in-2", "Sign in with wrong password")
        assert not is_invalid_credentials_behavior("sign-in", "Sign In")

    @pytest.mark.parametrize("message,expected", [
        ("Request timeout after 30s", True),
        ("Rate limit exceeded", True),
        ("read ECONNRESET", True),
        ("No object generated: response did not match schema", True),
        ("Element not found: save button", False),
    ])
    def test_retryable_errors(self, message, expected):
        """Transient executor errors are retryable"""
        assert is_retryable_error(message) is expected


class TestLocations:
    """Tests for URL and path helpers"""

    def test_urls_match_ignores_trailing_slash(self):
        """A trailing slash should not matter"""
        assert urls_match("http://localhost:3000/tasks/", "http://localhost:3000/tasks")
        assert not urls_match("http://localhost:3000/tasks", "http://localhost:3000/task")

    def test_parameterized(self):
        """Paths with :param segments are parameterized"""
        assert is_parameterized_path("/tasks/:id")
        assert not is_parameterized_path("/tasks")

    def test_path_matches_with_params(self):
        """:param segments match any non-empty segment"""
        assert path_matches("/tasks/42", "/tasks/:id")
        assert path_matches("/tasks/42/", "/tasks/:id")
        assert not path_matches("/tasks", "/tasks/:id")
        assert not path_matches("/notes/42", "/tasks/:id")

    def test_child_path(self):
        """Only strict descendants are children"""
        assert is_child_path("/tasks/42", "/tasks")
        assert not is_child_path("/tasks", "/tasks")
        assert not is_child_path("/tasks-archive", "/tasks")

    def test_root_has_no_children(self):
        """The root path does not claim every page"""
        assert not is_child_path("/tasks", "/")

    def test_login_page_by_path_or_title(self):
        """Login pages are detected from the path or the title"""
        assert looks_like_login_page("http://localhost:3000/sign-in")
        assert looks_like_login_page("http://localhost:3000/auth/callback")
        assert looks_like_login_page("http://localhost:3000/", "Login - App")
        assert not looks_like_login_page("http://localhost:3000/tasks", "Tasks")

    def test_sign_in_redirect(self):
        """Landing on a login page instead of the target is a redirect"""
        target = "http://localhost:3000/tasks"
        assert is_sign_in_redirect("http://localhost:3000/login?next=/tasks", target)
        assert not is_sign_in_redirect("http://localhost:3000/tasks/", target)
        assert not is_sign_in_redirect("http://localhost:3000/sign-in", "http://localhost:3000/sign-in")

    def test_page_state_warning(self):
        """Suspicious pages produce a warning"""
        assert "login page" in page_state_warning("http://x/login", "")
        assert "error page" in page_state_warning("http://x/tasks", "404 Not Found")
        assert page_state_warning("http://x/tasks", "Tasks") == ""
