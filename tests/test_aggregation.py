import pytest

from ledger.config.schemas import Assignment, Contractor, Project, ProjectStatus
from ledger.core.aggregation import (
    assignment_rows,
    budget_distribution,
    compute_portfolio_stats,
    compute_project_costs,
    contractor_summary,
    earnings_share,
    expense_ledger,
    percentage,
    round_half_away,
    status_counts,
)


def test_project_costs_follow_rate_times_hours(shop_project, contractors) -> None:
    costs = compute_project_costs(shop_project, contractors)

    assert costs.contractors_cost == 280000
    assert costs.expenses_cost == 20000
    assert costs.total_cost == 300000
    assert costs.income == 500000
    assert costs.profit == 200000
    assert costs.profit_margin == pytest.approx(40.0)
    assert round_half_away(costs.profit_margin) == 40.0


def test_project_costs_track_received_and_outstanding(shop_project, contractors) -> None:
    costs = compute_project_costs(shop_project, contractors)
    assert costs.received == 250000
    assert costs.outstanding == 250000


def test_empty_project_has_no_cost() -> None:
    project = Project(id="p", name="Empty", budget=1000)
    costs = compute_project_costs(project, [])

    assert costs.total_cost == 0
    assert costs.profit == costs.income == 1000


def test_zero_budget_margin_is_zero() -> None:
    project = Project(id="p", name="Internal", budget=0)
    assert compute_project_costs(project, []).profit_margin == 0


def test_unknown_contractor_contributes_zero(contractors) -> None:
    project = Project(
        id="p",
        name="Dangling",
        budget=100,
        assignments=(Assignment(contractor_id="ghost", hours=10), Assignment(contractor_id="2", hours=1)),
    )
    costs = compute_project_costs(project, contractors)
    assert costs.contractors_cost == 2000
    assert costs.profit == -1900
    assert costs.profit_margin == pytest.approx(-1900.0)


def test_compute_project_costs_does_not_mutate(shop_project, contractors) -> None:
    before = shop_project.model_dump()
    compute_project_costs(shop_project, contractors)
    assert shop_project.model_dump() == before


def test_portfolio_stats_totals(dataset) -> None:
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)

    assert stats.total_budget == 800000
    assert stats.total_costs == 555000
    assert stats.total_profit == stats.total_budget - stats.total_costs == 245000


def test_portfolio_stats_empty() -> None:
    stats = compute_portfolio_stats([], [])
    assert stats.total_budget == 0
    assert stats.total_costs == 0
    assert stats.total_profit == 0
    assert stats.contractor_earnings == ()


def test_earnings_are_summed_across_projects(dataset) -> None:
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)
    ranking = [(entry.contractor.id, entry.earnings) for entry in stats.contractor_earnings]

    assert ranking == [("1", 350000), ("3", 90000), ("2", 80000)]


def test_earnings_sum_repeated_assignments_in_one_project() -> None:
    worker = Contractor(id="w", name="Worker", rate=100)
    project = Project(
        id="p",
        name="Twice",
        budget=0,
        assignments=(Assignment(contractor_id="w", hours=2), Assignment(contractor_id="w", hours=3)),
    )
    stats = compute_portfolio_stats([project], [worker])
    assert stats.contractor_earnings[0].earnings == 500


def test_ranking_is_stable_for_ties() -> None:
    idle = [Contractor(id=str(index), name=f"c{index}", rate=10) for index in range(4)]
    busy = Contractor(id="busy", name="Busy", rate=10)
    project = Project(id="p", name="P", budget=0, assignments=(Assignment(contractor_id="busy", hours=1),))

    stats = compute_portfolio_stats([project], [*idle[:2], busy, *idle[2:]])

    assert [entry.contractor.id for entry in stats.contractor_earnings] == ["busy", "0", "1", "2", "3"]
    assert all(entry.earnings == 0 for entry in stats.contractor_earnings[1:])


def test_percentage_zero_denominator() -> None:
    assert percentage(123.0, 0) == 0
    assert percentage(0, 0) == 0
    assert percentage(25, 200) == 12.5


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0.05, 0.1), (-0.05, -0.1), (2.25, 2.3), (2.35, 2.4), (-2.25, -2.3), (40.0, 40.0)],
)
def test_round_half_away_from_zero(value: float, expected: float) -> None:
    assert round_half_away(value) == expected


def test_contractor_summary(dataset) -> None:
    summary = contractor_summary(dataset.contractors[0], dataset.projects)
    assert summary.hours == 140
    assert summary.project_count == 2
    assert summary.earned == 350000


def test_earnings_share_of_total_costs(dataset) -> None:
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)
    assert earnings_share(stats.contractor_earnings[0], stats) == pytest.approx(350000 / 555000 * 100)


def test_budget_distribution(dataset) -> None:
    distribution = budget_distribution(dataset.projects, dataset.contractors)

    assert distribution.contractors_share == pytest.approx(520000 / 800000 * 100)
    assert distribution.expenses_share == pytest.approx(35000 / 800000 * 100)
    assert distribution.profit_share == pytest.approx(245000 / 800000 * 100)


def test_budget_distribution_without_budget_is_zero() -> None:
    distribution = budget_distribution([Project(id="p", name="P", budget=0)], [])
    assert distribution.contractors_share == 0
    assert distribution.expenses_share == 0
    assert distribution.profit_share == 0


def test_status_counts_cover_every_status(shop_project) -> None:
    paused = shop_project.model_copy(update={"id": "x", "status": ProjectStatus.PAUSED})
    counts = status_counts([shop_project, paused])
    assert counts == {ProjectStatus.ACTIVE: 1, ProjectStatus.PAUSED: 1, ProjectStatus.COMPLETED: 0}


def test_expense_ledger_keeps_project_order(dataset) -> None:
    lines = expense_ledger(dataset.projects)
    assert [(line.project_name, line.expense.id) for line in lines] == [
        ("Electronics shop", "e1"),
        ("Electronics shop", "e2"),
        ("Law firm site", "e3"),
    ]


def test_assignment_rows_keep_unknown_contractors(contractors) -> None:
    project = Project(
        id="x",
        name="Orphaned",
        client="Acme",
        budget=1000,
        assignments=(
            Assignment(contractor_id="1", hours=2),
            Assignment(contractor_id="ghost", hours=5),
        ),
    )

    rows = assignment_rows(project, contractors)

    assert [row.index for row in rows] == [0, 1]
    assert rows[0].contractor.name == "Alexey"
    assert rows[0].cost == 5000
    assert rows[1].contractor is None
    assert rows[1].contractor_id == "ghost"
    assert rows[1].cost == 0
