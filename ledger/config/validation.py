from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from ledger.config.schemas import Dataset


@dataclass
class ValidationReport:
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationReport") -> "ValidationReport":
        return ValidationReport(
            warnings=[*self.warnings, *other.warnings],
            errors=[*self.errors, *other.errors],
        )


class RuntimeValidator:
    @staticmethod
    def validate_references(dataset: Dataset) -> ValidationReport:
        report = ValidationReport()
        known = {contractor.id for contractor in dataset.contractors}

        for project in dataset.projects:
            for assignment in project.assignments:
                if assignment.contractor_id in known:
                    continue
                report.warnings.append(
                    f"Project '{project.id}' references unknown contractor "
                    f"'{assignment.contractor_id}'; it will contribute zero cost"
                )

        return report

    @staticmethod
    def validate_assignments_unique(dataset: Dataset) -> ValidationReport:
        report = ValidationReport()

        for project in dataset.projects:
            counts = Counter(assignment.contractor_id for assignment in project.assignments)
            for contractor_id, count in counts.items():
                if count > 1:
                    report.warnings.append(
                        f"Contractor '{contractor_id}' is assigned {count} times to project "
                        f"'{project.id}'; hours are summed"
                    )

        return report

    @classmethod
    def validate_dataset(cls, dataset: Dataset) -> ValidationReport:
        return cls.validate_references(dataset).merge(cls.validate_assignments_unique(dataset))
