"""Suppression rules and the admission condition.

Both are loaded once at startup and never change afterwards, hence frozen.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

ScalarValue = StrictBool | StrictInt | StrictFloat | StrictStr | None
"""Condition values are compared by strict primitive equality, so only scalars make sense."""


class _RuleModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class IgnoreRules(_RuleModel):
    """Fields that must never be reported as changed.

    ``ignored_keys`` match a key name at any depth; ``ignored_paths`` match a
    dot-delimited path and everything below it.
    """

    ignored_keys: frozenset[StrictStr] = Field(default_factory=frozenset)
    ignored_paths: tuple[StrictStr, ...] = ()

    @field_validator("ignored_keys", "ignored_paths", mode="before")
    @classmethod
    def _empty_when_unset(cls, value: Any) -> Any:
        # An empty YAML key (``ignoredKeys:``) parses as None.
        return () if value is None else value


class FilterCondition(_RuleModel):
    """Admit only messages whose value at ``path`` equals ``value``."""

    path: StrictStr = ""
    value: ScalarValue = ""

    @field_validator("path", mode="before")
    @classmethod
    def _path_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def enabled(self) -> bool:
        """An empty path disables filtering."""
        return bool(self.path)
