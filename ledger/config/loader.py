from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ledger.config.schemas import DashboardSettings, Dataset, LegacyDataset, raise_config_error


class ConfigLoader:
    @staticmethod
    def load_yaml(path: Path | str) -> dict[str, Any]:
        source = Path(path)
        with source.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"YAML root must be a mapping: {source}")
        return payload

    @classmethod
    def load_dataset(cls, path: Path | str) -> Dataset:
        payload = cls.load_yaml(path)
        try:
            return Dataset.model_validate(payload)
        except ValidationError as error:
            raise raise_config_error(Path(path).name, error) from error

    @classmethod
    def load_legacy_dataset(cls, path: Path | str) -> LegacyDataset:
        payload = cls.load_yaml(path)
        try:
            return LegacyDataset.model_validate(payload)
        except ValidationError as error:
            raise raise_config_error(Path(path).name, error) from error

    @classmethod
    def load_settings(cls, path: Path | str) -> DashboardSettings:
        source = Path(path)
        if not source.exists():
            return DashboardSettings()
        payload = cls.load_yaml(source)
        try:
            return DashboardSettings.model_validate(payload)
        except ValidationError as error:
            raise raise_config_error(source.name, error) from error

    @staticmethod
    def dump_dataset(dataset: Dataset) -> str:
        return yaml.safe_dump(
            dataset.model_dump(mode="json"),
            allow_unicode=True,
            sort_keys=False,
        )
