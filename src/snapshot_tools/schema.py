from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SettingsOverrides(BaseModel):
    """Override payload accepted from editor settings or a config file.

    Keys follow the camelCase names editors send; the snake_case field names
    are accepted as well. Unknown keys are dropped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    workspace_root: Optional[str] = Field(default=None, alias="workspaceRoot")
    snapshot_root: Optional[str] = Field(default=None, alias="snapshotRoot")
    snapshot_ext: Optional[str] = Field(default=None, alias="snapshotExt")
    test_file_root: Optional[str] = Field(default=None, alias="testFileRoot")
    test_file_ext: Optional[List[str]] = Field(default=None, alias="testFileExt")
    snapshot_dir: Optional[str] = Field(default=None, alias="snapshotDir")
    test_file_dir: Optional[str] = Field(default=None, alias="testFileDir")
    snapshot_methods: Optional[List[str]] = Field(default=None, alias="snapshotMethods")
    test_methods: Optional[List[str]] = Field(default=None, alias="testMethods")
    suite_methods: Optional[List[str]] = Field(default=None, alias="suiteMethods")

    @field_validator(
        "test_file_ext",
        "snapshot_methods",
        "test_methods",
        "suite_methods",
        mode="before",
    )
    @classmethod
    def _single_string_as_list(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value

    def non_empty_items(self) -> dict[str, str | tuple[str, ...]]:
        """Field name -> value for every override that carries a value."""
        items: dict[str, str | tuple[str, ...]] = {}
        for name, value in self.model_dump().items():
            if not value:
                continue
            if isinstance(value, list):
                values = tuple(item for item in value if item)
                if not values:
                    continue
                items[name] = values
            else:
                items[name] = value
        return items
