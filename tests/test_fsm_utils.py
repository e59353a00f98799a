import pytest
from procureflow.errors import InvalidState, ValidationFailed
from procureflow.services.orchestrator import RR_FSM
from procureflow.utils.fsm import TransitionValidator
from procureflow.utils.validation import validate_status, require_fields, list_of_dicts, optional_dict, as_number


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(InvalidState):
        fsm.assert_can_transition('A', 'C')


def test_receiving_report_graph_names_required_source():
    assert RR_FSM.assert_can_transition('DRAFT', 'SUBMITTED')
    with pytest.raises(InvalidState) as exc:
        RR_FSM.assert_can_transition('DRAFT', 'COMPLETED')
    assert 'Receiving Report must be SUBMITTED' in exc.value.description
    assert RR_FSM.sources_for('DRAFT') == []


def test_validate_status_helper():
    assert validate_status('HIGH', ('LOW', 'HIGH'), 'priority') == 'HIGH'
    with pytest.raises(ValidationFailed) as exc:
        validate_status('SOON', ('LOW', 'HIGH'), 'priority')
    assert exc.value.description == 'priority invalid'


def test_payload_shape_helpers():
    with pytest.raises(ValidationFailed) as exc:
        require_fields({'a': 1, 'b': ''}, 'a', 'b', 'c')
    assert exc.value.description == 'b, c required'
    assert list_of_dicts(None, 'items') == []
    with pytest.raises(ValidationFailed):
        list_of_dicts([1, 2], 'items')
    assert optional_dict(None, 'budget') is None
    with pytest.raises(ValidationFailed):
        optional_dict('x', 'budget')
    assert as_number('2.5', 'tax') == 2.5
    with pytest.raises(ValidationFailed):
        as_number('abc', 'tax')
