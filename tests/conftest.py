import datetime as dt

import pytest

from ledger.config.schemas import Assignment, Contractor, Dataset, Expense, Income, Project


@pytest.fixture
def contractors() -> tuple[Contractor, ...]:
    return (
        Contractor(id="1", name="Alexey", role="Frontend Developer", rate=2500),
        Contractor(id="2", name="Maria", role="UI/UX Designer", rate=2000),
        Contractor(id="3", name="Dmitry", role="Backend Developer", rate=3000),
    )


@pytest.fixture
def shop_project() -> Project:
    return Project(
        id="1",
        name="Electronics shop",
        client="TechnoMir",
        budget=500000,
        assignments=(
            Assignment(contractor_id="1", hours=80),
            Assignment(contractor_id="2", hours=40),
        ),
        expenses=(
            Expense(id="e1", description="Hosting", amount=12000, category="Infra", date=dt.date(2024, 1, 15)),
            Expense(id="e2", description="Plugins", amount=8000, category="Software", date=dt.date(2024, 1, 20)),
        ),
        incomes=(Income(id="i1", description="Advance 50%", amount=250000, date=dt.date(2024, 1, 10)),),
        created_at=dt.date(2024, 1, 10),
    )


@pytest.fixture
def law_project() -> Project:
    return Project(
        id="2",
        name="Law firm site",
        client="PravoConsult",
        budget=300000,
        assignments=(
            Assignment(contractor_id="1", hours=60),
            Assignment(contractor_id="3", hours=30),
        ),
        expenses=(
            Expense(id="e3", description="Premium theme", amount=15000, category="Design", date=dt.date(2024, 2, 1)),
        ),
        created_at=dt.date(2024, 2, 1),
    )


@pytest.fixture
def dataset(contractors, shop_project, law_project) -> Dataset:
    return Dataset(contractors=contractors, projects=(shop_project, law_project))
