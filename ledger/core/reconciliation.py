from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from ledger.config.schemas import Assignment, Dataset, LegacyAssignment, LegacyDataset, Project
from ledger.config.validation import ValidationReport

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    dataset: Dataset
    report: ValidationReport
    converted: int = 0


def _convert(
    project_id: str,
    assignment: LegacyAssignment,
    rates: dict[str, float],
    report: ValidationReport,
) -> tuple[Assignment, bool]:
    if assignment.total_amount is None:
        return Assignment(contractor_id=assignment.contractor_id, hours=assignment.hours), False

    rate = rates.get(assignment.contractor_id)
    if rate is None:
        report.warnings.append(
            f"Project '{project_id}': contractor '{assignment.contractor_id}' is unknown, "
            f"fixed fee {assignment.total_amount} dropped, hours kept at {assignment.hours}"
        )
        return Assignment(contractor_id=assignment.contractor_id, hours=assignment.hours), False

    if rate <= 0:
        report.warnings.append(
            f"Project '{project_id}': contractor '{assignment.contractor_id}' has no hourly rate, "
            f"fixed fee {assignment.total_amount} cannot be converted, hours kept at {assignment.hours}"
        )
        return Assignment(contractor_id=assignment.contractor_id, hours=assignment.hours), False

    hours = assignment.total_amount / rate
    if assignment.hours and not math.isclose(hours, assignment.hours):
        report.warnings.append(
            f"Project '{project_id}': contractor '{assignment.contractor_id}' stored {assignment.hours}h "
            f"but fixed fee {assignment.total_amount} at rate {rate} gives {hours:g}h; using the fee"
        )
    return Assignment(contractor_id=assignment.contractor_id, hours=hours), True


def reconcile_fixed_fees(legacy: LegacyDataset) -> ReconciliationResult:
    """Convert fixed-fee assignments into hours at the contractor's rate.

    Run once when importing data recorded with per-assignment totals. The
    result only carries hours, so cost is afterwards always rate * hours.
    """
    rates = {contractor.id: contractor.rate for contractor in legacy.contractors}
    report = ValidationReport()
    converted = 0
    projects: list[Project] = []

    for project in legacy.projects:
        assignments: list[Assignment] = []
        for assignment in project.assignments:
            migrated, changed = _convert(project.id, assignment, rates, report)
            assignments.append(migrated)
            converted += int(changed)

        payload = project.model_dump(exclude={"assignments"})
        projects.append(Project(**payload, assignments=tuple(assignments)))

    dataset = Dataset(version=legacy.version, contractors=legacy.contractors, projects=tuple(projects))
    logger.info("Reconciled %d fixed-fee assignments, %d warnings", converted, len(report.warnings))
    return ReconciliationResult(dataset=dataset, report=report, converted=converted)
