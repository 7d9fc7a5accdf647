"""
Tests for credential capture, uniquification and injection
"""

import pytest

from behavior_orchestrator.credentials import (
    CredentialTracker,
    capture_credentials,
    process_steps_with_credentials,
)
from behavior_orchestrator.main import Behavior, Step


@pytest.fixture
def tracker():
    return CredentialTracker()


@pytest.fixture
def signed_up(tracker):
    """Tracker holding credentials from a sign-up"""
    tracker.capture_from_step('Type "alice_1@example.com" into the email field')
    tracker.capture_from_step('Type "s3cret!" into the password field')
    return tracker


def sign_in_steps():
    return [
        Step.act('Type "placeholder@example.com" into the email field'),
        Step.act('Type "placeholder" into the password field'),
        Step.act("Click the sign in button"),
        Step.check("The dashboard is shown"),
    ]


class TestCredentialTracker:
    """Tests for CredentialTracker"""

    def test_capture_email_and_password(self, signed_up):
        """Typed email and password values should be captured"""
        creds = signed_up.get_credentials()
        assert creds.email == "alice_1@example.com"
        assert creds.password == "s3cret!"
        assert signed_up.has_credentials()

    def test_capture_ignores_other_fields(self, tracker):
        """Non-credential fields should not be captured"""
        tracker.capture_from_step('Type "Alice" into the name field')
        tracker.capture_from_step("Click the submit button")
        assert not tracker.has_credentials()
        assert tracker.get_credentials().email is None

    def test_capture_without_article(self, tracker):
        """The field descriptor should not require 'the'"""
        tracker.capture_from_step("type 'bob@example.com' into email input")
        assert tracker.get_credentials().email == "bob@example.com"

    def test_partial_credentials_are_not_complete(self, tracker):
        """Only an email is not enough to count as credentials"""
        tracker.capture_from_step('Type "bob@example.com" into the email field')
        assert not tracker.has_credentials()

    def test_get_credentials_returns_copy(self, signed_up):
        """Mutating the snapshot should not change the tracker"""
        creds = signed_up.get_credentials()
        creds.email = "mallory@example.com"
        assert signed_up.get_credentials().email == "alice_1@example.com"

    def test_uniquify_across_resets(self, tracker):
        """Emails stay distinct because reset never rewinds the counter"""
        emails = []
        for _ in range(5):
            emails.append(tracker.uniquify_email("alice@example.com"))
            tracker.reset()

        assert emails == [f"alice_{n}@example.com" for n in range(1, 6)]
        assert len(set(emails)) == 5
        assert tracker.counter == 5

    def test_uniquify_without_at_sign(self, tracker):
        """A value without '@' is returned unchanged"""
        assert tracker.uniquify_email("not-an-email") == "not-an-email"
        assert tracker.counter == 1

    def test_reset_clears_values(self, signed_up):
        """reset() should forget captured values"""
        signed_up.reset()
        assert not signed_up.has_credentials()
        assert signed_up.get_credentials().password is None

    def test_inject_email(self, signed_up):
        """The typed email should be replaced with the captured one"""
        result = signed_up.inject_into_step('Type "x@y.com" into the email field')
        assert result == 'Type "alice_1@example.com" into the email field'

    def test_inject_preserves_single_quotes(self, signed_up):
        """Single-quoted instructions should stay single-quoted"""
        result = signed_up.inject_into_step("Type 'hunter2' into the password field")
        assert result == "Type 's3cret!' into the password field"

    def test_inject_without_credentials_is_noop(self, tracker):
        """Nothing is injected before credentials are captured"""
        instruction = 'Type "x@y.com" into the email field'
        assert tracker.inject_into_step(instruction) == instruction

    def test_inject_leaves_other_fields(self, signed_up):
        """Non-credential fields are never rewritten"""
        instruction = 'Type "Groceries" into the title field'
        assert signed_up.inject_into_step(instruction) == instruction


class TestProcessSteps:
    """Tests for process_steps_with_credentials"""

    def test_sign_up_uniquifies_email(self, tracker):
        """Account creation should register with a fresh email every time"""
        sign_up = Behavior(id="sign-up", title="Sign Up")
        steps = [
            Step.act('Type "alice@example.com" into the email field'),
            Step.act('Type "s3cret!" into the password field'),
            Step.check("The dashboard is shown"),
        ]

        first = process_steps_with_credentials(sign_up, steps, tracker)
        second = process_steps_with_credentials(sign_up, steps, tracker)

        assert first[0].instruction == 'Type "alice_1@example.com" into the email field'
        assert second[0].instruction == 'Type "alice_2@example.com" into the email field'
        assert first[1] == steps[1]
        assert first[2] == steps[2]

    def test_invalid_credentials_behavior_untouched(self, signed_up):
        """Behaviors testing bad credentials must keep their values"""
        for behavior in (
            Behavior(id="invalid-sign-in", title="Invalid Sign In"),
            Behavior(id="sign-in-bad-password", title="Sign In With Wrong Password"),
        ):
            steps = sign_in_steps()
            assert process_steps_with_credentials(behavior, steps, signed_up) == steps

    def test_injects_into_sign_in_preamble(self, signed_up):
        """Captured credentials should replace the typed ones"""
        behavior = Behavior(id="sign-in", title="Sign In")
        processed = process_steps_with_credentials(behavior, sign_in_steps(), signed_up)

        assert processed[0].instruction == 'Type "alice_1@example.com" into the email field'
        assert processed[1].instruction == 'Type "s3cret!" into the password field'
        assert processed[2].instruction == "Click the sign in button"
        assert processed[3].is_check

    def test_injection_window(self, signed_up):
        """Steps beyond the injection window should be left alone"""
        behavior = Behavior(id="change-email", title="Change Email")
        steps = [Step.act("Click somewhere") for _ in range(5)]
        steps.append(Step.act('Type "new@example.com" into the email field'))

        processed = process_steps_with_credentials(behavior, steps, signed_up)
        assert processed[5].instruction == 'Type "new@example.com" into the email field'

        widened = process_steps_with_credentials(behavior, steps, signed_up, injection_window=6)
        assert widened[5].instruction == 'Type "alice_1@example.com" into the email field'

    def test_no_credentials_no_change(self, tracker):
        """Without captured credentials steps pass through"""
        behavior = Behavior(id="sign-in", title="Sign In")
        steps = sign_in_steps()
        assert process_steps_with_credentials(behavior, steps, tracker) == steps

    def test_capture_credentials_from_processed_steps(self, tracker):
        """Credentials should be captured from the uniquified steps"""
        sign_up = Behavior(id="sign-up", title="Sign Up")
        steps = process_steps_with_credentials(
            sign_up,
            [
                Step.act('Type "alice@example.com" into the email field'),
                Step.act('Type "s3cret!" into the password field'),
            ],
            tracker,
        )
        capture_credentials(steps, tracker)

        assert tracker.get_credentials().email == "alice_1@example.com"
        assert tracker.get_credentials().password == "s3cret!"
