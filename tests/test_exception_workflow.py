import pytest

from compliance_engine.agents.exception_override_resolver import overridden_finding_ids
from compliance_engine.agents.exception_workflow import approve, reject, request_exception, withdraw

from conftest import FIXED_NOW, fixed_clock, make_exception, make_finding


def test_resolver_keeps_only_approved_exceptions_with_a_target():
    exceptions = [
        make_exception("f-1", "APPROVED", exception_id="e-1"),
        make_exception("f-2", "REQUESTED", exception_id="e-2"),
        make_exception("f-3", "REJECTED", exception_id="e-3"),
        make_exception("f-4", "WITHDRAWN", exception_id="e-4"),
        make_exception(None, "APPROVED", exception_id="e-5"),
        make_exception("f-1", "APPROVED", exception_id="e-6"),
    ]

    assert overridden_finding_ids(exceptions) == frozenset({"f-1"})


def test_request_exception_targets_the_finding():
    finding = make_finding("f-1")

    request = request_exception(finding, "Accept NY law", "Counterparty is US-only", requested_by="legal@acme")

    assert request.status == "REQUESTED"
    assert request.clause_finding_id == "f-1"
    assert request.clause_type == finding.clause_type
    assert request.contract_version_id == finding.contract_version_id
    assert request.is_active


def test_request_exception_refuses_second_active_request():
    finding = make_finding("f-1")
    existing = [make_exception("f-1", "APPROVED")]

    with pytest.raises(ValueError):
        request_exception(finding, "Again", existing=existing)


def test_request_exception_allowed_after_rejection():
    finding = make_finding("f-1")
    existing = [make_exception("f-1", "REJECTED")]

    request = request_exception(finding, "Second attempt", existing=existing, exception_id="e-2")

    assert request.id == "e-2"


def test_request_exception_refuses_compliant_finding():
    with pytest.raises(ValueError):
        request_exception(make_finding("f-1", status="COMPLIANT"), "Nothing to except")


@pytest.mark.parametrize(
    "transition, expected",
    [(approve, "APPROVED"), (reject, "REJECTED"), (withdraw, "WITHDRAWN")],
)
def test_decisions_move_out_of_requested(transition, expected):
    request = make_exception("f-1", "REQUESTED")

    decided = transition(request, decided_by="cfo@acme", reason="ok", clock=fixed_clock)

    assert decided.status == expected
    assert decided.decided_by == "cfo@acme"
    assert decided.decided_at == FIXED_NOW
    assert decided.is_terminal
    # earlier snapshot untouched
    assert request.status == "REQUESTED"


@pytest.mark.parametrize("status", ["APPROVED", "REJECTED", "WITHDRAWN"])
@pytest.mark.parametrize("transition", [approve, reject, withdraw])
def test_terminal_exceptions_cannot_transition(status, transition):
    with pytest.raises(ValueError):
        transition(make_exception("f-1", status))
