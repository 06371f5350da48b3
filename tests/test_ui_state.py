import datetime as dt
import json

import pytest

from ledger.config.schemas import ProjectStatus
from ledger.core.store import ProjectStore, StoreError
from ledger.core.ui_state import (
    CloseDialog,
    DialogKind,
    EditProject,
    ExpenseForm,
    OpenDialog,
    SelectTab,
    StopEditing,
    Tab,
    ToggleDialog,
    UIState,
    UpdateDraft,
    reduce,
    submit_draft,
)


def test_open_update_close_resets_draft() -> None:
    state = reduce(UIState(), OpenDialog(DialogKind.PROJECT_EXPENSE))
    state = reduce(state, UpdateDraft(DialogKind.PROJECT_EXPENSE, "description", "Hosting"))
    state = reduce(state, UpdateDraft(DialogKind.PROJECT_EXPENSE, "amount", 1200.0))

    assert state.open_dialog == DialogKind.PROJECT_EXPENSE
    assert state.expense_draft.description == "Hosting"

    closed = reduce(state, CloseDialog(DialogKind.PROJECT_EXPENSE))
    assert closed.open_dialog is None
    assert closed.expense_draft.description == ""
    assert closed.expense_draft.amount == 0


def test_reduce_returns_new_state() -> None:
    original = UIState()
    updated = reduce(original, SelectTab(Tab.ANALYTICS))
    assert original.active_tab == Tab.PROJECTS
    assert updated.active_tab == Tab.ANALYTICS


def test_edit_project_prefills_draft_and_stop_clears() -> None:
    state = reduce(
        UIState(),
        EditProject(project_id="1", name="Shop", client="TechnoMir", budget=500000, status="active"),
    )
    assert state.editing_project_id == "1"
    assert state.open_dialog == DialogKind.EDIT_PROJECT
    assert state.project_draft.name == "Shop"

    state = reduce(state, UpdateDraft(DialogKind.EDIT_PROJECT, "status", "completed"))
    assert state.project_draft.status == "completed"

    stopped = reduce(state, StopEditing())
    assert stopped.editing_project_id is None
    assert stopped.project_draft.name == ""


def test_unknown_draft_field_is_rejected() -> None:
    with pytest.raises(ValueError):
        reduce(UIState(), UpdateDraft(DialogKind.PROJECT_INCOME, "category", "Infra"))


def test_state_is_json_serializable() -> None:
    state = reduce(UIState(), OpenDialog(DialogKind.ADD_CONTRACTOR))
    payload = json.loads(json.dumps(state.to_dict()))

    assert payload["open_dialog"] == "add_contractor"
    assert payload["active_tab"] == "projects"
    assert set(payload["expense_draft"]) == {field for field in ExpenseForm.__dataclass_fields__}


def test_toggle_dialog_opens_then_closes_with_reset() -> None:
    state = reduce(UIState(), ToggleDialog(DialogKind.ADD_CONTRACTOR))
    assert state.open_dialog == DialogKind.ADD_CONTRACTOR

    state = reduce(state, UpdateDraft(DialogKind.ADD_CONTRACTOR, "name", "Anna"))
    closed = reduce(state, ToggleDialog(DialogKind.ADD_CONTRACTOR))

    assert closed.open_dialog is None
    assert closed.contractor_draft.name == ""


def test_new_project_draft_is_separate_from_edit_draft() -> None:
    state = reduce(
        UIState(),
        EditProject(project_id="1", name="Shop", client="TechnoMir", budget=500000, status="active"),
    )
    state = reduce(state, UpdateDraft(DialogKind.ADD_PROJECT, "name", "Landing"))

    assert state.new_project_draft.name == "Landing"
    assert state.project_draft.name == "Shop"


def test_submit_new_project_from_draft() -> None:
    store = ProjectStore()
    state = reduce(UIState(), OpenDialog(DialogKind.ADD_PROJECT))
    for field, value in (("name", "Landing"), ("client", "Acme"), ("budget", 90000.0), ("status", "paused")):
        state = reduce(state, UpdateDraft(DialogKind.ADD_PROJECT, field, value))

    state, project = submit_draft(state, DialogKind.ADD_PROJECT, store)

    assert store.dataset.projects == (project,)
    assert project.name == "Landing"
    assert project.status == ProjectStatus.PAUSED
    assert state.open_dialog is None
    assert state.new_project_draft.name == ""


def test_submit_contractor_from_draft() -> None:
    store = ProjectStore()
    state = reduce(UIState(), ToggleDialog(DialogKind.ADD_CONTRACTOR))
    state = reduce(state, UpdateDraft(DialogKind.ADD_CONTRACTOR, "name", "Anna"))
    state = reduce(state, UpdateDraft(DialogKind.ADD_CONTRACTOR, "rate", 1800.0))

    state, contractor = submit_draft(state, DialogKind.ADD_CONTRACTOR, store)

    assert store.dataset.contractors == (contractor,)
    assert contractor.rate == 1800
    assert state.open_dialog is None


def test_submit_expense_targets_edited_project(dataset) -> None:
    store = ProjectStore(dataset)
    state = reduce(
        UIState(),
        EditProject(project_id="2", name="Law firm site", client="PravoConsult", budget=300000, status="active"),
    )
    state = reduce(state, OpenDialog(DialogKind.PROJECT_EXPENSE))
    for field, value in (
        ("description", "Domain"),
        ("amount", 1500.0),
        ("category", "Infra"),
        ("date", "2024-03-01"),
    ):
        state = reduce(state, UpdateDraft(DialogKind.PROJECT_EXPENSE, field, value))

    state, expense = submit_draft(state, DialogKind.PROJECT_EXPENSE, store)

    assert expense.date == dt.date(2024, 3, 1)
    assert store.dataset.get_project("2").expenses[-1] == expense
    assert state.editing_project_id == "2"
    assert state.open_dialog is None
    assert state.expense_draft.description == ""


def test_submit_assignment_and_edit_project(dataset) -> None:
    store = ProjectStore(dataset)
    state = reduce(
        UIState(),
        EditProject(project_id="2", name="Law firm site", client="PravoConsult", budget=300000, status="active"),
    )
    state = reduce(state, UpdateDraft(DialogKind.PROJECT_ASSIGNMENT, "contractor_id", "2"))
    state = reduce(state, UpdateDraft(DialogKind.PROJECT_ASSIGNMENT, "hours", 10.0))
    state, project = submit_draft(state, DialogKind.PROJECT_ASSIGNMENT, store)
    assert project.assignments[-1].contractor_id == "2"

    state = reduce(state, UpdateDraft(DialogKind.EDIT_PROJECT, "status", "completed"))
    state, project = submit_draft(state, DialogKind.EDIT_PROJECT, store)

    assert project.status == ProjectStatus.COMPLETED
    assert state.editing_project_id is None
    assert state.open_dialog is None


def test_submit_incomplete_draft_keeps_state(dataset) -> None:
    store = ProjectStore(dataset)
    state = reduce(UIState(), OpenDialog(DialogKind.ADD_PROJECT))
    state = reduce(state, UpdateDraft(DialogKind.ADD_PROJECT, "name", "Landing"))

    with pytest.raises(StoreError):
        submit_draft(state, DialogKind.ADD_PROJECT, store)

    assert store.dataset is dataset
    assert state.open_dialog == DialogKind.ADD_PROJECT
    assert state.new_project_draft.name == "Landing"


def test_submit_project_entries_require_edited_project() -> None:
    store = ProjectStore()
    state = reduce(UIState(), UpdateDraft(DialogKind.PROJECT_INCOME, "description", "Advance"))
    state = reduce(state, UpdateDraft(DialogKind.PROJECT_INCOME, "amount", 1000.0))

    with pytest.raises(StoreError):
        submit_draft(state, DialogKind.PROJECT_INCOME, store)


def test_submit_rejects_malformed_date(dataset) -> None:
    store = ProjectStore(dataset)
    state = reduce(
        UIState(),
        EditProject(project_id="1", name="Shop", client="TechnoMir", budget=500000, status="active"),
    )
    for field, value in (("description", "Advance"), ("amount", 1000.0), ("date", "01.03.2024")):
        state = reduce(state, UpdateDraft(DialogKind.PROJECT_INCOME, field, value))

    with pytest.raises(StoreError):
        submit_draft(state, DialogKind.PROJECT_INCOME, store)
    assert store.dataset is dataset
