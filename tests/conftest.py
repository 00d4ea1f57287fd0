"""Shared test fixtures and row builders for the inventory reconciler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from reconciler.config import Settings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

CLOUD_HEADER = "名前,更新日時,更新者,ファイルサイズ,アイテムの種類,パス"


def snapshot_row(
    path: str,
    size: int,
    *,
    folder: bool = False,
    date: str = "2024/01/02",
    time: str = "10:00:00",
    name: str | None = None,
) -> str:
    """Build a 7-field temp storage snapshot row."""
    if name is None:
        name = path.replace("\\", "/").rsplit("/", 1)[-1]
    ext = name.rsplit(".", 1)[-1] if "." in name else ""
    flag = "TRUE" if folder else "FALSE"
    return f'"{name}","{path}","{ext}",{size},{flag},{date},{time}'


def cloud_row(
    parent: str,
    name: str,
    size: int,
    *,
    modified: str = "2024/01/02 1:00:00",
    kind: str = "File",
    author: str = "admin",
) -> str:
    """Build a 6-field cloud listing row."""
    return f'{name},"{modified}",{author},"{size}","{kind}",{parent}'


def project_row(project: str, category: str, subcategory: str, segment: str, size: int) -> str:
    """Build a 5-field project list row."""
    return f'"{project}","{category}","{subcategory}",{segment},{size}'


@pytest.fixture
def write_inventory(tmp_path: Path) -> Callable[[str, Iterable[str]], Path]:
    """Write lines to ``tmp_path / name`` and return the path."""

    def _write(name: str, lines: Iterable[str], *, bom: bool = False) -> Path:
        path = tmp_path / name
        text = "".join(f"{line}\r\n" for line in lines)
        path.write_text(("\ufeff" if bom else "") + text, encoding="utf-8", newline="")
        return path

    return _write


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and any ``.env`` file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        base_dir="C:\\storage\\",
        source_path=tmp_path / "source.csv",
        dest_path=tmp_path / "dest.csv",
        output_path=tmp_path / "out.csv",
        concurrency=2,
    )
