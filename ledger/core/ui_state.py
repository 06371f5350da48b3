from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Union

from ledger.config.schemas import Contractor, Expense, Income, Project
from ledger.core.store import ProjectStore, StoreError


class DialogKind(str, Enum):
    ADD_PROJECT = "add_project"
    ADD_CONTRACTOR = "add_contractor"
    EDIT_PROJECT = "edit_project"
    PROJECT_ASSIGNMENT = "project_assignment"
    PROJECT_EXPENSE = "project_expense"
    PROJECT_INCOME = "project_income"


class Tab(str, Enum):
    PROJECTS = "projects"
    CONTRACTORS = "contractors"
    FINANCES = "finances"
    ANALYTICS = "analytics"


def _today() -> str:
    return dt.date.today().isoformat()


@dataclass(frozen=True)
class ProjectForm:
    name: str = ""
    client: str = ""
    budget: float = 0.0
    status: str = "active"


@dataclass(frozen=True)
class ContractorForm:
    name: str = ""
    role: str = ""
    rate: float = 0.0


@dataclass(frozen=True)
class AssignmentForm:
    contractor_id: str = ""
    hours: float = 0.0


@dataclass(frozen=True)
class ExpenseForm:
    description: str = ""
    amount: float = 0.0
    category: str = ""
    date: str = field(default_factory=_today)


@dataclass(frozen=True)
class IncomeForm:
    description: str = ""
    amount: float = 0.0
    date: str = field(default_factory=_today)


Form = Union[ProjectForm, ContractorForm, AssignmentForm, ExpenseForm, IncomeForm]

# dialog -> (draft attribute on UIState, form factory)
_DRAFTS: dict[DialogKind, tuple[str, type]] = {
    DialogKind.ADD_PROJECT: ("new_project_draft", ProjectForm),
    DialogKind.EDIT_PROJECT: ("project_draft", ProjectForm),
    DialogKind.ADD_CONTRACTOR: ("contractor_draft", ContractorForm),
    DialogKind.PROJECT_ASSIGNMENT: ("assignment_draft", AssignmentForm),
    DialogKind.PROJECT_EXPENSE: ("expense_draft", ExpenseForm),
    DialogKind.PROJECT_INCOME: ("income_draft", IncomeForm),
}


@dataclass(frozen=True)
class UIState:
    active_tab: Tab = Tab.PROJECTS
    open_dialog: DialogKind | None = None
    editing_project_id: str | None = None
    new_project_draft: ProjectForm = field(default_factory=ProjectForm)
    project_draft: ProjectForm = field(default_factory=ProjectForm)
    contractor_draft: ContractorForm = field(default_factory=ContractorForm)
    assignment_draft: AssignmentForm = field(default_factory=AssignmentForm)
    expense_draft: ExpenseForm = field(default_factory=ExpenseForm)
    income_draft: IncomeForm = field(default_factory=IncomeForm)

    def draft_for(self, kind: DialogKind) -> Form:
        attribute, _ = _DRAFTS[kind]
        return getattr(self, attribute)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["active_tab"] = self.active_tab.value
        payload["open_dialog"] = self.open_dialog.value if self.open_dialog else None
        return payload


@dataclass(frozen=True)
class SelectTab:
    tab: Tab


@dataclass(frozen=True)
class OpenDialog:
    kind: DialogKind


@dataclass(frozen=True)
class CloseDialog:
    kind: DialogKind


@dataclass(frozen=True)
class ToggleDialog:
    kind: DialogKind


@dataclass(frozen=True)
class EditProject:
    project_id: str
    name: str
    client: str
    budget: float
    status: str


@dataclass(frozen=True)
class StopEditing:
    pass


@dataclass(frozen=True)
class UpdateDraft:
    kind: DialogKind
    field: str
    value: Any


Action = Union[SelectTab, OpenDialog, CloseDialog, ToggleDialog, EditProject, StopEditing, UpdateDraft]


def _reset_draft(state: UIState, kind: DialogKind) -> UIState:
    attribute, factory = _DRAFTS[kind]
    return replace(state, **{attribute: factory()})


def reduce(state: UIState, action: Action) -> UIState:
    if isinstance(action, SelectTab):
        return replace(state, active_tab=Tab(action.tab))

    if isinstance(action, OpenDialog):
        return replace(state, open_dialog=action.kind)

    if isinstance(action, CloseDialog):
        closed = _reset_draft(state, action.kind)
        if state.open_dialog == action.kind:
            closed = replace(closed, open_dialog=None)
        return closed

    if isinstance(action, ToggleDialog):
        if state.open_dialog == action.kind:
            return reduce(state, CloseDialog(action.kind))
        return replace(state, open_dialog=action.kind)

    if isinstance(action, EditProject):
        draft = ProjectForm(name=action.name, client=action.client, budget=action.budget, status=action.status)
        return replace(
            state,
            editing_project_id=action.project_id,
            open_dialog=DialogKind.EDIT_PROJECT,
            project_draft=draft,
        )

    if isinstance(action, StopEditing):
        return replace(
            state,
            editing_project_id=None,
            open_dialog=None,
            project_draft=ProjectForm(),
            assignment_draft=AssignmentForm(),
            expense_draft=ExpenseForm(),
            income_draft=IncomeForm(),
        )

    if isinstance(action, UpdateDraft):
        draft = state.draft_for(action.kind)
        allowed = {item.name for item in fields(draft)}
        if action.field not in allowed:
            raise ValueError(f"Unknown field '{action.field}' for {action.kind.value} draft")
        attribute, _ = _DRAFTS[action.kind]
        return replace(state, **{attribute: replace(draft, **{action.field: action.value})})

    raise ValueError(f"Unknown UI action: {action!r}")


def _editing(state: UIState) -> str:
    if state.editing_project_id is None:
        raise StoreError("No project is being edited")
    return state.editing_project_id


def _parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except (TypeError, ValueError) as error:
        raise StoreError(f"Invalid date '{value}'") from error


def submit_draft(
    state: UIState,
    kind: DialogKind,
    store: ProjectStore,
) -> tuple[UIState, Project | Contractor | Expense | Income]:
    """Run the store command for a dialog's draft and close the dialog.

    ``StoreError`` propagates with the state untouched, so the draft stays
    filled in for the user to correct.
    """
    draft = state.draft_for(kind)

    if kind == DialogKind.ADD_PROJECT:
        result = store.add_project(name=draft.name, client=draft.client, budget=draft.budget, status=draft.status)
    elif kind == DialogKind.EDIT_PROJECT:
        result = store.update_project(
            _editing(state),
            name=draft.name,
            client=draft.client,
            budget=draft.budget,
            status=draft.status,
        )
        return reduce(state, StopEditing()), result
    elif kind == DialogKind.ADD_CONTRACTOR:
        result = store.add_contractor(name=draft.name, role=draft.role, rate=draft.rate)
    elif kind == DialogKind.PROJECT_ASSIGNMENT:
        result = store.assign_contractor(_editing(state), draft.contractor_id, draft.hours)
    elif kind == DialogKind.PROJECT_EXPENSE:
        result = store.add_expense(
            _editing(state),
            draft.description,
            draft.amount,
            draft.category,
            _parse_date(draft.date),
        )
    elif kind == DialogKind.PROJECT_INCOME:
        result = store.add_income(_editing(state), draft.description, draft.amount, _parse_date(draft.date))
    else:
        raise ValueError(f"Unknown dialog: {kind!r}")

    return reduce(state, CloseDialog(kind)), result
