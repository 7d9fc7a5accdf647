"""
Credential Lifecycle

Captures the credentials an account-creation behavior registers with and
replays them into later behaviors' sign-in steps.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import List, Optional

from .instructions import (
    is_account_creation_behavior,
    is_invalid_credentials_behavior,
    parse_field_assignment,
)
from .main import Behavior, Step

logger = logging.getLogger(__name__)

TYPED_VALUE_PATTERN = re.compile(r"Type\s+[\"']([^\"']+)[\"']", re.IGNORECASE)

DEFAULT_INJECTION_WINDOW = 5


@dataclass
class Credentials:
    """Snapshot of captured credentials"""
    email: Optional[str] = None
    password: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.email is not None and self.password is not None


def _replace_typed_value(instruction: str, value: str) -> str:
    """Swap the quoted value of a Type instruction, keeping the quote style"""
    quote = '"' if '"' in instruction else "'"
    return TYPED_VALUE_PATTERN.sub(lambda _: f"Type {quote}{value}{quote}", instruction, count=1)


class CredentialTracker:
    """
    Tracks credentials for the current run.

    The uniquify counter is monotonic for the tracker's lifetime and is not
    affected by reset(), so every generated email is distinct.
    """

    def __init__(self):
        self._credentials = Credentials()
        self._counter = 0

    @property
    def counter(self) -> int:
        return self._counter

    def uniquify_email(self, email: str) -> str:
        """Return local_<n>@domain for a fresh n"""
        self._counter += 1
        local, sep, domain = email.partition("@")
        if not sep:
            return email
        return f"{local}_{self._counter}@{domain}"

    def capture_from_step(self, instruction: str) -> None:
        assignment = parse_field_assignment(instruction)
        if assignment is None:
            return
        slot = assignment.credential_slot
        if slot == "email":
            self._credentials.email = assignment.value
        elif slot == "password":
            self._credentials.password = assignment.value

    def inject_into_step(self, instruction: str) -> str:
        """Replace a typed email/password value with the captured one"""
        assignment = parse_field_assignment(instruction)
        if assignment is None:
            return instruction

        slot = assignment.credential_slot
        if slot == "email" and self._credentials.email:
            return _replace_typed_value(instruction, self._credentials.email)
        if slot == "password" and self._credentials.password:
            return _replace_typed_value(instruction, self._credentials.password)
        return instruction

    def has_credentials(self) -> bool:
        return self._credentials.complete

    def get_credentials(self) -> Credentials:
        return Credentials(email=self._credentials.email, password=self._credentials.password)

    def reset(self) -> None:
        """Forget captured values; the uniquify counter keeps counting"""
        self._credentials = Credentials()


def process_steps_with_credentials(
    behavior: Behavior,
    steps: List[Step],
    tracker: CredentialTracker,
    injection_window: int = DEFAULT_INJECTION_WINDOW,
) -> List[Step]:
    """
    Prepare a behavior's steps for execution.

    - Account creation: every typed email is uniquified so repeated sign-ups
      never collide.
    - Invalid-credential behaviors: returned untouched.
    - Everything else: captured credentials replace typed email/password
      values in act steps within the first injection_window steps.
    """
    if is_account_creation_behavior(behavior.id):
        processed = []
        for step in steps:
            assignment = parse_field_assignment(step.instruction) if step.is_act else None
            if assignment is not None and assignment.credential_slot == "email":
                unique_email = tracker.uniquify_email(assignment.value)
                step = replace(step, instruction=_replace_typed_value(step.instruction, unique_email))
            processed.append(step)
        return processed

    if is_invalid_credentials_behavior(behavior.id, behavior.title):
        return list(steps)

    if not tracker.has_credentials():
        return list(steps)

    return [
        replace(step, instruction=tracker.inject_into_step(step.instruction))
        if step.is_act and index < injection_window else step
        for index, step in enumerate(steps)
    ]


def capture_credentials(steps: List[Step], tracker: CredentialTracker) -> None:
    """Record credentials typed by the act steps of an account-creation run"""
    for step in steps:
        if step.is_act:
            tracker.capture_from_step(step.instruction)
    if tracker.has_credentials():
        logger.info(f"Captured credentials for {tracker.get_credentials().email}")
