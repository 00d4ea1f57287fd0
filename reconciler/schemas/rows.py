"""Typed rows of the inventory file formats."""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Self, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from reconciler.exceptions import SnapshotFormatError
from reconciler.services.datetime_service import (
    parse_cloud_datetime,
    parse_snapshot_datetime_or_zero,
)

FOLDER_FLAG = "TRUE"
FOLDER_KIND = "Folder"

RowT = TypeVar("RowT", bound=BaseModel)


def _unquote(value: Any) -> Any:
    if isinstance(value, str):
        return value.replace('"', "")
    return value


class SnapshotRow(BaseModel):
    """One line of a temp storage snapshot.

    ``"<name>","<fullpath>","<ext>",<size>,<TRUE|FALSE>,<YYYY/MM/DD>,<HH:MM:SS>``
    """

    model_config = ConfigDict(frozen=True)

    FIELD_COUNT: ClassVar[int] = 7

    name: str
    path: str
    extension: str
    size: int
    is_folder: bool
    modified_at: datetime

    @field_validator("name", "extension", "size", mode="before")
    @classmethod
    def strip_quotes(cls, v: Any) -> Any:
        """Drop the quotes around text and size columns."""
        _ = cls
        return _unquote(v)

    @field_validator("is_folder", mode="before")
    @classmethod
    def folder_flag(cls, v: Any) -> Any:
        """Only the literal ``TRUE`` marks a folder."""
        _ = cls
        if isinstance(v, str):
            return v == FOLDER_FLAG
        return v

    @classmethod
    def from_fields(cls, fields: list[str], line_number: int) -> Self:
        """Build a row from split fields; the path column is kept raw.

        An unparsable date/time falls back to the zero timestamp.
        """
        return _validate(
            cls,
            {
                "name": fields[0],
                "path": fields[1],
                "extension": fields[2],
                "size": fields[3],
                "is_folder": fields[4],
                "modified_at": parse_snapshot_datetime_or_zero(fields[5], fields[6]),
            },
            line_number,
        )


class CloudRow(BaseModel):
    """One line of a cloud storage listing (after the header).

    ``<name>,"<date> <time>",<author>,"<size>","<File|Folder>",<parentPath>``
    """

    model_config = ConfigDict(frozen=True)

    FIELD_COUNT: ClassVar[int] = 6

    name: str
    modified_at: datetime
    author: str
    size: int
    kind: str
    parent: str

    @field_validator("name", "author", "size", "kind", "parent", mode="before")
    @classmethod
    def strip_quotes(cls, v: Any) -> Any:
        """Cloud listings carry no escaped quotes; every ``"`` is dropped."""
        _ = cls
        return _unquote(v)

    @field_validator("modified_at", mode="before")
    @classmethod
    def parse_modified(cls, v: Any) -> Any:
        """Parse the combined date-time column and shift it to storage time."""
        _ = cls
        if isinstance(v, str):
            return parse_cloud_datetime(v)
        return v

    @property
    def relative_path(self) -> str:
        return f"{self.parent}/{self.name}"

    @classmethod
    def from_fields(cls, fields: list[str], line_number: int) -> Self:
        return _validate(
            cls,
            {
                "name": fields[0],
                "modified_at": fields[1],
                "author": fields[2],
                "size": fields[3],
                "kind": fields[4],
                "parent": fields[5],
            },
            line_number,
        )


class ProjectRow(BaseModel):
    """One line of a project source list.

    ``"<project>","<category>","<subcategory>",<pathSegment>,<size>``
    """

    model_config = ConfigDict(frozen=True)

    FIELD_COUNT: ClassVar[int] = 5

    project: str
    category: str
    subcategory: str
    segment: str
    size: int

    @field_validator("project", "category", "subcategory", "segment", "size", mode="before")
    @classmethod
    def strip_quotes(cls, v: Any) -> Any:
        _ = cls
        return _unquote(v)

    @property
    def relative_path(self) -> str:
        """The four path columns joined with ``/``."""
        return "/".join((self.project, self.category, self.subcategory, self.segment))

    @classmethod
    def from_fields(cls, fields: list[str], line_number: int) -> Self:
        return _validate(
            cls,
            {
                "project": fields[0],
                "category": fields[1],
                "subcategory": fields[2],
                "segment": fields[3],
                "size": fields[4],
            },
            line_number,
        )


def _validate(model: type[RowT], data: dict[str, Any], line_number: int) -> RowT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise SnapshotFormatError(
            f"invalid {model.__name__}: {problems}", line_number=line_number
        ) from exc
