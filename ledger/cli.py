from __future__ import annotations

import argparse
import json
from pathlib import Path

from ledger.config.loader import ConfigLoader
from ledger.config.schemas import Dataset
from ledger.config.validation import RuntimeValidator
from ledger.core.aggregation import compute_portfolio_stats, compute_project_costs, round_half_away
from ledger.core.reconciliation import reconcile_fixed_fees
from ledger.logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="project-ledger portfolio report")
    parser.add_argument("--data", help="Path to dataset.yaml")
    parser.add_argument("--json", action="store_true", help="Output report as JSON")
    parser.add_argument("--reconcile", help="Legacy dataset with fixed-fee assignments to migrate")
    parser.add_argument("--out", help="Where to write the reconciled dataset")
    parser.add_argument("--log-level", default="WARNING")
    return parser


def build_report(dataset: Dataset) -> dict:
    contractors = dataset.contractors_by_id()
    stats = compute_portfolio_stats(dataset.projects, dataset.contractors)
    projects = []
    for project in dataset.projects:
        costs = compute_project_costs(project, contractors)
        projects.append(
            {
                "id": project.id,
                "name": project.name,
                "status": project.status.value,
                "contractors_cost": costs.contractors_cost,
                "expenses_cost": costs.expenses_cost,
                "total_cost": costs.total_cost,
                "income": costs.income,
                "received": costs.received,
                "profit": costs.profit,
                "profit_margin": round_half_away(costs.profit_margin),
            }
        )

    return {
        "total_budget": stats.total_budget,
        "total_costs": stats.total_costs,
        "total_profit": stats.total_profit,
        "projects": projects,
        "contractor_earnings": [
            {"id": entry.contractor.id, "name": entry.contractor.name, "earnings": entry.earnings}
            for entry in stats.contractor_earnings
        ],
    }


def print_report(report: dict) -> None:
    print(f"Total budget: {report['total_budget']:.2f}")
    print(f"Total costs:  {report['total_costs']:.2f}")
    print(f"Total profit: {report['total_profit']:.2f}")
    print()
    for project in report["projects"]:
        print(
            f"[{project['status']}] {project['name']}: cost {project['total_cost']:.2f}, "
            f"profit {project['profit']:.2f} ({project['profit_margin']:.1f}%)"
        )
    print()
    for index, entry in enumerate(report["contractor_earnings"], start=1):
        print(f"{index}. {entry['name']}: {entry['earnings']:.2f}")


def run_reconcile(source: str, target: str | None) -> int:
    result = reconcile_fixed_fees(ConfigLoader.load_legacy_dataset(source))
    for warning in result.report.warnings:
        print(f"warning: {warning}")

    payload = ConfigLoader.dump_dataset(result.dataset)
    if target:
        Path(target).write_text(payload, encoding="utf-8")
        print(f"Converted {result.converted} assignments into {target}")
    else:
        print(payload)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.reconcile:
        return run_reconcile(args.reconcile, args.out)

    if not args.data:
        parser.error("--data is required unless --reconcile is given")

    dataset = ConfigLoader.load_dataset(args.data)
    for warning in RuntimeValidator.validate_dataset(dataset).warnings:
        print(f"warning: {warning}")

    report = build_report(dataset)
    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
    else:
        print_report(report)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
