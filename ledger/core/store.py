from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable
from uuid import uuid4

from ledger.config.schemas import (
    Assignment,
    Contractor,
    Dataset,
    Expense,
    Income,
    Project,
    ProjectStatus,
)

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dataset], None]


class StoreError(ValueError):
    """Raised when a command is missing required fields or targets an unknown entity."""


def _new_id() -> str:
    return uuid4().hex


def _require_text(value: str, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise StoreError(f"Field '{field_name}' is required")
    return cleaned


def _require_positive(value: float, field_name: str) -> float:
    if value is None or value <= 0:
        raise StoreError(f"Field '{field_name}' must be greater than zero")
    return float(value)


def _require_non_negative(value: float, field_name: str) -> float:
    if value is None or value < 0:
        raise StoreError(f"Field '{field_name}' cannot be negative")
    return float(value)


def _require_status(value: ProjectStatus | str) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError as error:
        raise StoreError(f"Unknown status '{value}'") from error


class ProjectStore:
    """Single-writer holder of the current dataset snapshot.

    Each command builds a new immutable ``Dataset``, swaps it in and notifies
    subscribers with the event name and the new snapshot.
    """

    def __init__(self, dataset: Dataset | None = None) -> None:
        self._dataset = dataset or Dataset()
        self._listeners: list[Listener] = []

    @property
    def dataset(self) -> Dataset:
        return self._dataset

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, dataset: Dataset) -> Dataset:
        return self._commit("dataset_replaced", dataset)

    # --- projects ---

    def add_project(
        self,
        name: str,
        client: str,
        budget: float,
        status: ProjectStatus = ProjectStatus.ACTIVE,
        project_id: str | None = None,
        created_at: dt.date | None = None,
    ) -> Project:
        project = Project(
            id=project_id or _new_id(),
            name=_require_text(name, "name"),
            client=_require_text(client, "client"),
            budget=_require_positive(budget, "budget"),
            status=_require_status(status),
            created_at=created_at or dt.date.today(),
        )
        if any(item.id == project.id for item in self._dataset.projects):
            raise StoreError(f"Project '{project.id}' already exists")
        self._commit("project_added", self._with_projects([*self._dataset.projects, project]))
        return project

    def update_project(self, project_id: str, **changes: Any) -> Project:
        allowed = {"name", "client", "budget", "status"}
        unknown = set(changes) - allowed
        if unknown:
            raise StoreError(f"Cannot update project fields: {', '.join(sorted(unknown))}")
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "name")
        if "client" in changes:
            changes["client"] = _require_text(changes["client"], "client")
        if "budget" in changes:
            changes["budget"] = _require_positive(changes["budget"], "budget")
        if "status" in changes:
            changes["status"] = _require_status(changes["status"])

        return self._update_project(project_id, "project_updated", lambda project: changes)

    def set_status(self, project_id: str, status: ProjectStatus | str) -> Project:
        target = _require_status(status)
        return self._update_project(project_id, "status_changed", lambda project: {"status": target})

    def remove_project(self, project_id: str) -> None:
        self._find_project(project_id)
        remaining = [project for project in self._dataset.projects if project.id != project_id]
        self._commit("project_removed", self._with_projects(remaining))

    # --- contractors ---

    def add_contractor(
        self,
        name: str,
        role: str = "",
        rate: float = 0.0,
        contractor_id: str | None = None,
    ) -> Contractor:
        contractor = Contractor(
            id=contractor_id or _new_id(),
            name=_require_text(name, "name"),
            role=(role or "").strip(),
            rate=_require_non_negative(rate, "rate"),
        )
        if contractor.id in self._dataset.contractors_by_id():
            raise StoreError(f"Contractor '{contractor.id}' already exists")
        dataset = Dataset(
            version=self._dataset.version,
            contractors=(*self._dataset.contractors, contractor),
            projects=self._dataset.projects,
        )
        self._commit("contractor_added", dataset)
        return contractor

    def remove_contractor(self, contractor_id: str) -> None:
        # assignments are left in place; the engine treats them as unresolved
        if contractor_id not in self._dataset.contractors_by_id():
            raise StoreError(f"Unknown contractor '{contractor_id}'")
        remaining = tuple(item for item in self._dataset.contractors if item.id != contractor_id)
        self._commit("contractor_removed", self._dataset.model_copy(update={"contractors": remaining}))

    # --- assignments ---

    def assign_contractor(self, project_id: str, contractor_id: str, hours: float) -> Project:
        if contractor_id not in self._dataset.contractors_by_id():
            raise StoreError(f"Unknown contractor '{contractor_id}'")
        assignment = Assignment(contractor_id=contractor_id, hours=_require_positive(hours, "hours"))
        return self._update_project(
            project_id,
            "assignment_added",
            lambda project: {"assignments": (*project.assignments, assignment)},
        )

    def remove_assignment(self, project_id: str, index: int) -> Project:
        def drop(project: Project) -> dict[str, Any]:
            if not 0 <= index < len(project.assignments):
                raise StoreError(f"Project '{project_id}' has no assignment #{index}")
            return {"assignments": tuple(item for pos, item in enumerate(project.assignments) if pos != index)}

        return self._update_project(project_id, "assignment_removed", drop)

    # --- expenses ---

    def add_expense(
        self,
        project_id: str,
        description: str,
        amount: float,
        category: str,
        date: dt.date | None = None,
        expense_id: str | None = None,
    ) -> Expense:
        expense = Expense(
            id=expense_id or _new_id(),
            description=_require_text(description, "description"),
            amount=_require_positive(amount, "amount"),
            category=_require_text(category, "category"),
            date=date or dt.date.today(),
        )
        self._update_project(project_id, "expense_added", lambda project: {"expenses": (*project.expenses, expense)})
        return expense

    def remove_expense(self, project_id: str, expense_id: str) -> Project:
        def drop(project: Project) -> dict[str, Any]:
            if not any(item.id == expense_id for item in project.expenses):
                raise StoreError(f"Project '{project_id}' has no expense '{expense_id}'")
            return {"expenses": tuple(item for item in project.expenses if item.id != expense_id)}

        return self._update_project(project_id, "expense_removed", drop)

    # --- incomes ---

    def add_income(
        self,
        project_id: str,
        description: str,
        amount: float,
        date: dt.date | None = None,
        income_id: str | None = None,
    ) -> Income:
        income = Income(
            id=income_id or _new_id(),
            description=_require_text(description, "description"),
            amount=_require_positive(amount, "amount"),
            date=date or dt.date.today(),
        )
        self._update_project(project_id, "income_added", lambda project: {"incomes": (*project.incomes, income)})
        return income

    def remove_income(self, project_id: str, income_id: str) -> Project:
        def drop(project: Project) -> dict[str, Any]:
            if not any(item.id == income_id for item in project.incomes):
                raise StoreError(f"Project '{project_id}' has no income '{income_id}'")
            return {"incomes": tuple(item for item in project.incomes if item.id != income_id)}

        return self._update_project(project_id, "income_removed", drop)

    # --- internals ---

    def _find_project(self, project_id: str) -> Project:
        try:
            return self._dataset.get_project(project_id)
        except KeyError as error:
            raise StoreError(f"Unknown project '{project_id}'") from error

    def _update_project(
        self,
        project_id: str,
        event: str,
        build_changes: Callable[[Project], dict[str, Any]],
    ) -> Project:
        current = self._find_project(project_id)
        updated = current.model_copy(update=build_changes(current))
        projects = [updated if project.id == project_id else project for project in self._dataset.projects]
        self._commit(event, self._with_projects(projects))
        return updated

    def _with_projects(self, projects: list[Project]) -> Dataset:
        return Dataset(version=self._dataset.version, contractors=self._dataset.contractors, projects=tuple(projects))

    def _commit(self, event: str, dataset: Dataset) -> Dataset:
        self._dataset = dataset
        logger.info("Store event %s: %d projects, %d contractors", event, len(dataset.projects), len(dataset.contractors))
        for listener in list(self._listeners):
            try:
                listener(event, dataset)
            except Exception:  # noqa: BLE001
                # the snapshot is already committed; remaining listeners still get it
                logger.exception("Store listener failed on event %s", event)
        return dataset
