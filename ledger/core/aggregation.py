"""Financial aggregation over an in-memory snapshot of projects and contractors.

Every function here is pure: inputs are read, never mutated, and a fresh
result is returned on each call. Assignment cost is always derived as
``contractor.rate * assignment.hours``; profit is measured against the
project budget. An assignment pointing at an unknown contractor contributes
zero instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

from ledger.config.schemas import Contractor, Expense, Project, ProjectStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectCosts:
    contractors_cost: float
    expenses_cost: float
    total_cost: float
    income: float
    received: float
    outstanding: float
    profit: float
    profit_margin: float


@dataclass(frozen=True)
class ContractorEarnings:
    contractor: Contractor
    earnings: float


@dataclass(frozen=True)
class PortfolioStats:
    total_budget: float
    total_costs: float
    total_profit: float
    contractor_earnings: tuple[ContractorEarnings, ...]


@dataclass(frozen=True)
class ContractorSummary:
    contractor: Contractor
    earned: float
    hours: float
    project_count: int


@dataclass(frozen=True)
class BudgetDistribution:
    contractors_share: float
    expenses_share: float
    profit_share: float


@dataclass(frozen=True)
class AssignmentRow:
    index: int
    contractor_id: str
    contractor: Contractor | None
    hours: float
    cost: float


@dataclass(frozen=True)
class ExpenseLine:
    project_id: str
    project_name: str
    expense: Expense


def percentage(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def round_half_away(value: float, digits: int = 1) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _index(contractors: Iterable[Contractor] | Mapping[str, Contractor]) -> Mapping[str, Contractor]:
    if isinstance(contractors, Mapping):
        return contractors
    return {contractor.id: contractor for contractor in contractors}


def _contractors_cost(project: Project, index: Mapping[str, Contractor]) -> float:
    total = 0.0
    for assignment in project.assignments:
        contractor = index.get(assignment.contractor_id)
        if contractor is None:
            logger.debug(
                "Skipping assignment of unknown contractor %s on project %s",
                assignment.contractor_id,
                project.id,
            )
            continue
        total += contractor.rate * assignment.hours
    return total


def compute_project_costs(
    project: Project,
    contractors: Iterable[Contractor] | Mapping[str, Contractor],
) -> ProjectCosts:
    index = _index(contractors)

    contractors_cost = _contractors_cost(project, index)
    expenses_cost = sum((expense.amount for expense in project.expenses), 0.0)
    total_cost = contractors_cost + expenses_cost

    income = project.budget
    received = sum((entry.amount for entry in project.incomes), 0.0)
    profit = income - total_cost
    profit_margin = profit / income * 100 if income > 0 else 0.0

    return ProjectCosts(
        contractors_cost=contractors_cost,
        expenses_cost=expenses_cost,
        total_cost=total_cost,
        income=income,
        received=received,
        outstanding=income - received,
        profit=profit,
        profit_margin=profit_margin,
    )


def contractor_earnings(contractor: Contractor, projects: Iterable[Project]) -> float:
    # every matching assignment counts, including repeats within one project
    return sum(
        (
            contractor.rate * assignment.hours
            for project in projects
            for assignment in project.assignments
            if assignment.contractor_id == contractor.id
        ),
        0.0,
    )


def compute_portfolio_stats(
    projects: Sequence[Project],
    contractors: Sequence[Contractor],
) -> PortfolioStats:
    index = _index(contractors)

    total_budget = sum((project.budget for project in projects), 0.0)
    total_costs = sum((compute_project_costs(project, index).total_cost for project in projects), 0.0)

    ranking = sorted(
        (ContractorEarnings(contractor=item, earnings=contractor_earnings(item, projects)) for item in contractors),
        key=lambda entry: entry.earnings,
        reverse=True,
    )

    return PortfolioStats(
        total_budget=total_budget,
        total_costs=total_costs,
        total_profit=total_budget - total_costs,
        contractor_earnings=tuple(ranking),
    )


def contractor_summary(contractor: Contractor, projects: Sequence[Project]) -> ContractorSummary:
    hours = 0.0
    project_count = 0
    for project in projects:
        matched = [item for item in project.assignments if item.contractor_id == contractor.id]
        if matched:
            project_count += 1
            hours += sum(item.hours for item in matched)

    return ContractorSummary(
        contractor=contractor,
        earned=contractor.rate * hours,
        hours=hours,
        project_count=project_count,
    )


def earnings_share(entry: ContractorEarnings, stats: PortfolioStats) -> float:
    return percentage(entry.earnings, stats.total_costs)


def budget_distribution(
    projects: Sequence[Project],
    contractors: Sequence[Contractor],
) -> BudgetDistribution:
    index = _index(contractors)
    costs = [compute_project_costs(project, index) for project in projects]
    total_budget = sum((project.budget for project in projects), 0.0)
    contractors_total = sum((item.contractors_cost for item in costs), 0.0)
    expenses_total = sum((item.expenses_cost for item in costs), 0.0)
    profit_total = total_budget - contractors_total - expenses_total

    return BudgetDistribution(
        contractors_share=percentage(contractors_total, total_budget),
        expenses_share=percentage(expenses_total, total_budget),
        profit_share=percentage(profit_total, total_budget),
    )


def status_counts(projects: Iterable[Project]) -> dict[ProjectStatus, int]:
    counts = {status: 0 for status in ProjectStatus}
    for project in projects:
        counts[project.status] += 1
    return counts


def expense_ledger(projects: Iterable[Project]) -> list[ExpenseLine]:
    return [
        ExpenseLine(project_id=project.id, project_name=project.name, expense=expense)
        for project in projects
        for expense in project.expenses
    ]


def assignment_rows(
    project: Project,
    contractors: Iterable[Contractor] | Mapping[str, Contractor],
) -> list[AssignmentRow]:
    """One row per assignment, in stored order; unknown contractors cost zero."""
    index = _index(contractors)
    rows = []
    for position, assignment in enumerate(project.assignments):
        contractor = index.get(assignment.contractor_id)
        rows.append(
            AssignmentRow(
                index=position,
                contractor_id=assignment.contractor_id,
                contractor=contractor,
                hours=assignment.hours,
                cost=contractor.rate * assignment.hours if contractor is not None else 0.0,
            )
        )
    return rows
