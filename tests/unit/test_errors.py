from __future__ import annotations

import pytest

from umlflow.errors import (
    AgentContractError,
    AgentExecutionFailure,
    FailureCode,
    MissingKeyError,
    OrchestrationError,
    ScopeTypeError,
    WiringError,
    WorkflowCancelledError,
    describe_failure,
    failure_payload,
)


def test_missing_key_error_message_is_not_quoted() -> None:
    error = MissingKeyError("critique", reader="UMLDesigner")

    assert isinstance(error, KeyError)
    assert str(error) == (
        "Scope key 'critique' has not been written (read by UMLDesigner)"
    )
    assert error.to_payload().code is FailureCode.MISSING_KEY


def test_wiring_error_lists_every_problem() -> None:
    error = WiringError(["'a' is never produced", "'b' has two writers"])

    assert isinstance(error, ValueError)
    assert error.problems == ["'a' is never produced", "'b' has two writers"]
    assert str(error) == (
        "Invalid workflow wiring: 'a' is never produced; 'b' has two writers"
    )


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ScopeTypeError("score must stay a float"), FailureCode.SCOPE_TYPE),
        (AgentContractError("undeclared key"), FailureCode.AGENT_CONTRACT),
        (WorkflowCancelledError("stop"), FailureCode.CANCELLED),
    ],
)
def test_error_codes(error: OrchestrationError, code: FailureCode) -> None:
    assert error.code is code
    assert failure_payload(error) == {
        "code": code.value,
        "message": str(error),
        "agent_name": None,
        "cause": None,
    }


def test_agent_failure_payload_names_agent_and_cause() -> None:
    error = AgentExecutionFailure("UMLCritic", TimeoutError("read timed out"))

    payload = failure_payload(error)

    assert payload["code"] == "agent_execution"
    assert payload["agent_name"] == "UMLCritic"
    assert payload["cause"] == "TimeoutError: read timed out"
    assert describe_failure(error) == (
        "The 'UMLCritic' step could not complete (TimeoutError: read timed out)."
    )


def test_describe_failure_variants() -> None:
    assert describe_failure(WorkflowCancelledError("sigint")) == (
        "The workflow was cancelled before it finished."
    )
    assert describe_failure(WiringError(["x"])) == (
        "The workflow could not run: Invalid workflow wiring: x"
    )
    assert describe_failure(OSError("disk full")) == "Unexpected error: disk full"
    assert failure_payload(OSError("disk full")) == {
        "code": "unexpected",
        "message": "disk full",
    }
