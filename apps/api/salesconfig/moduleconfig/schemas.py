from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


LEAD_PROGRESS_FIELD = "leadProgressDisposition"


def _duplicates(names: Iterable[str]) -> list[str]:
    return sorted(name for name, count in Counter(names).items() if count > 1)


class SubDispositionEntry(BaseModel):
    """Leaf of the status tree. An empty name marks the default entry of its disposition."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    bucket: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _absent_name_is_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_default(self) -> bool:
        return self.name == ""


class DispositionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    sub_dispositions: tuple[SubDispositionEntry, ...] = ()

    @model_validator(mode="after")
    def _unique_sub_disposition_names(self) -> DispositionEntry:
        duplicated = _duplicates(entry.name for entry in self.sub_dispositions)
        if duplicated:
            labels = ", ".join(repr(name) for name in duplicated)
            raise ValueError(f"duplicate sub-disposition names under disposition '{self.name}': {labels}")
        return self


class ProgressValue(BaseModel):
    """One selectable value of a config field; for the lead progress field it also carries dispositions."""

    model_config = ConfigDict(frozen=True)

    display_name: str | None = None
    key: str | None = None
    value: str | None = None
    dependent_values: tuple[str, ...] | None = None
    dispositions: tuple[DispositionEntry, ...] = ()

    @model_validator(mode="after")
    def _unique_disposition_names(self) -> ProgressValue:
        duplicated = _duplicates(entry.name for entry in self.dispositions)
        if duplicated:
            raise ValueError(f"duplicate disposition names under progress '{self.display_name}': {', '.join(duplicated)}")
        return self


class ConfigField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field_name: str = Field(min_length=1)
    field_type: str = Field(min_length=1)
    description: str | None = None
    values: tuple[ProgressValue, ...] = ()


def _validate_field_names(fields: tuple[ConfigField, ...]) -> tuple[ConfigField, ...]:
    duplicated = _duplicates(field.field_name for field in fields)
    if duplicated:
        raise ValueError(f"duplicate field names: {', '.join(duplicated)}")
    return fields


class ModuleConfig(BaseModel):
    """Immutable snapshot of one module configuration document as seen by the resolution engines."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    module_id: str = Field(min_length=1)
    project_id: str | None = None
    config_name: str = Field(min_length=1)
    description: str | None = None
    fields: tuple[ConfigField, ...] = ()
    metadata: dict[str, Any] | None = None

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, value: tuple[ConfigField, ...]) -> tuple[ConfigField, ...]:
        return _validate_field_names(value)

    @property
    def is_global(self) -> bool:
        return self.project_id is None

    def find_field(self, field_name: str) -> ConfigField | None:
        return next((field for field in self.fields if field.field_name == field_name), None)


class ModuleConfigCreate(BaseModel):
    module_id: str = Field(min_length=1)
    project_id: str | None = Field(default=None, min_length=1)
    config_name: str = Field(min_length=1)
    description: str | None = None
    fields: list[ConfigField]
    metadata: dict[str, Any] | None = None

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, value: list[ConfigField]) -> list[ConfigField]:
        return list(_validate_field_names(tuple(value)))


class ModuleConfigUpdate(BaseModel):
    config_name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    fields: list[ConfigField] | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("fields")
    @classmethod
    def _unique_field_names(cls, value: list[ConfigField] | None) -> list[ConfigField] | None:
        if value is None:
            return None
        return list(_validate_field_names(tuple(value)))


class ModuleConfigRead(BaseModel):
    id: uuid.UUID
    module_id: str
    project_id: str | None
    config_name: str
    description: str | None
    fields: list[ConfigField]
    metadata: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class ResolvedModuleConfigRead(BaseModel):
    resolved: bool
    source: str | None = None
    config: ModuleConfig | None = None
