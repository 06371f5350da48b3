from __future__ import annotations

import datetime as dt
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Contractor(FrozenModel):
    id: str
    name: str
    role: str = ""
    rate: float = Field(default=0.0, ge=0)


class Expense(FrozenModel):
    id: str
    description: str
    amount: float = Field(ge=0)
    category: str = ""
    date: dt.date


class Income(FrozenModel):
    id: str
    description: str
    amount: float = Field(ge=0)
    date: dt.date


class Assignment(FrozenModel):
    contractor_id: str
    hours: float = Field(default=0.0, ge=0)


class LegacyAssignment(FrozenModel):
    contractor_id: str
    hours: float = Field(default=0.0, ge=0)
    total_amount: float | None = Field(default=None, ge=0)


class Project(FrozenModel):
    id: str
    name: str
    client: str = ""
    budget: float = Field(default=0.0, ge=0)
    status: ProjectStatus = ProjectStatus.ACTIVE
    assignments: tuple[Assignment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    incomes: tuple[Income, ...] = ()
    created_at: dt.date = Field(default_factory=dt.date.today)


class LegacyProject(Project):
    assignments: tuple[LegacyAssignment, ...] = ()


def _ensure_unique(ids: list[str], label: str) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"Duplicate {label} id '{item}'")
        seen.add(item)


class Dataset(FrozenModel):
    version: int = 1
    contractors: tuple[Contractor, ...] = ()
    projects: tuple[Project, ...] = ()

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("Only dataset version=1 is supported")
        return value

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "Dataset":
        _ensure_unique([item.id for item in self.contractors], "contractor")
        _ensure_unique([item.id for item in self.projects], "project")
        return self

    def get_project(self, project_id: str) -> Project:
        for project in self.projects:
            if project.id == project_id:
                return project
        raise KeyError(f"Unknown project '{project_id}'")

    def contractors_by_id(self) -> dict[str, Contractor]:
        return {contractor.id: contractor for contractor in self.contractors}


class LegacyDataset(Dataset):
    projects: tuple[LegacyProject, ...] = ()


class DashboardSettings(FrozenModel):
    version: int = 1
    title: str = "Система учета проектов"
    currency: str = "₽"
    data_file: Path = Path("config/dataset.yaml")
    log_level: str = "INFO"

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("Only dashboard config version=1 is supported")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            raise ValueError(f"Unsupported log_level '{value}'")
        return normalized


def raise_config_error(context: str, error: ValidationError) -> ValueError:
    details = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in error.errors())
    return ValueError(f"{context} validation failed: {details}")
