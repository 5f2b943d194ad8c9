"""Tests for classifying proceed outcomes."""

from __future__ import annotations

import pytest

from idxauth.classifier import ErrorClassifier, ProceedOutcome
from idxauth.models import IdxStatus
from idxauth.next_step import NextStepBuilder


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


def test_advance_to_new_state(classifier, parse_idx) -> None:
    current = parse_idx("identify")
    new = parse_idx("challenge-password")
    result = classifier.classify(ProceedOutcome(response=new), current, current.remediations[0])
    assert result.status is IdxStatus.PENDING
    assert result.advanced is True
    assert result.response is new
    assert result.next_step_source is None


def test_completion_counts_as_advance(classifier, parse_idx) -> None:
    current = parse_idx("challenge-password")
    result = classifier.classify(
        ProceedOutcome(response=parse_idx("success")), current, current.remediations[0]
    )
    assert result.advanced is True


def test_soft_failure_resumes_same_step(classifier, parse_idx) -> None:
    current = parse_idx("identify")
    result = classifier.classify(
        ProceedOutcome(response=parse_idx("identify-access-denied")), current, current.remediations[0]
    )
    assert result.status is IdxStatus.PENDING
    assert result.advanced is False
    assert result.next_step_source == current.remediations[0]
    assert [m.i18n_key for m in result.messages] == ["security.access_denied"]


def test_same_names_without_messages_is_advance(classifier, parse_idx) -> None:
    current = parse_idx("identify")
    result = classifier.classify(ProceedOutcome(response=parse_idx("identify")), current, current.remediations[0])
    assert result.advanced is True


@pytest.mark.parametrize(
    ("fixture", "key", "text"),
    [
        ("error-incorrect-password", "incorrectPassword", "Password is incorrect"),
        ("error-user-not-assigned", None, "User is not assigned to this application"),
        ("error-authentication-failed", "errors.E0000004", "Authentication failed"),
    ],
)
def test_fatal_rejection(classifier, parse_idx, load_idx, fixture, key, text) -> None:
    current = parse_idx("identify-with-password")
    result = classifier.classify(ProceedOutcome(rejected=load_idx(fixture)), current, current.remediations[0])
    assert result.status is IdxStatus.TERMINAL
    assert result.next_step_source is None
    (message,) = result.messages
    assert message.i18n_key == key
    assert message.text == text


def test_recoverable_rejection_uses_error_body_step(classifier, parse_idx, load_idx) -> None:
    current = parse_idx("enroll-authenticator-phone")
    result = classifier.classify(
        ProceedOutcome(rejected=load_idx("error-invalid-passcode")), current, current.remediations[0]
    )
    assert result.status is IdxStatus.PENDING
    assert result.advanced is False
    assert result.next_step_source.name == "enroll-authenticator"
    assert result.next_step_source.fields[0].form[0].messages
    (message,) = result.messages
    assert message.i18n_key == "api.authn.error.PASSCODE_INVALID"
    assert message.i18n_params == []


def test_recoverable_rejection_falls_back_to_prior_step(classifier, parse_idx, load_idx) -> None:
    current = parse_idx("authenticator-enrollment-data-phone")
    result = classifier.classify(
        ProceedOutcome(rejected=load_idx("error-invalid-phone")), current, current.remediations[0]
    )
    assert result.status is IdxStatus.PENDING
    assert result.next_step_source == current.remediations[0]
    (message,) = result.messages
    assert message.i18n_key is None
    assert message.text == "Unable to initiate factor enrollment: Invalid Phone Number."


@pytest.mark.parametrize(
    "fixture, expected_type, input_name",
    [
        ("challenge-email", "email", "verificationCode"),
        ("challenge-password", "password", "password"),
    ],
)
def test_recovered_step_keeps_submitted_type(
    classifier, parse_idx, load_idx, fixture, expected_type, input_name
) -> None:
    current = parse_idx(fixture)
    result = classifier.classify(
        ProceedOutcome(rejected=load_idx("error-invalid-email-code")), current, current.remediations[0]
    )
    source = result.next_step_source
    assert source.type == expected_type
    assert source.fields[0].form[0].messages
    assert NextStepBuilder().build(source).inputs[0].name == input_name
