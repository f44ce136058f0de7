from __future__ import annotations

import asyncio
import logging
import random
import shutil
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from fastapi import UploadFile

from crm.core.errors import FilesystemFault, ValidationFault

logger = logging.getLogger(__name__)


@dataclass
class StagedFile:
    original_filename: str
    temp_path: Path
    size: int


def clean_filename(raw_name: str | None) -> str:
    name = Path((raw_name or "").replace("\\", "/")).name.strip()
    if name in {"", ".", ".."}:
        raise ValidationFault("Uploaded file has no filename")
    return name


def _temp_name(original_filename: str) -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{original_filename}"


def _write_payload(source: BinaryIO, target_path: Path) -> int:
    target_path.parent.mkdir(parents=True, exist_ok=True)
    source.seek(0)
    with target_path.open("wb") as output:
        shutil.copyfileobj(source, output)
    return target_path.stat().st_size


class AttachmentStager:
    """Receives uploads into the shared temporary directory."""

    def __init__(self, temp_dir: Path, timeout_seconds: float = 30.0) -> None:
        self.temp_dir = Path(temp_dir)
        self.timeout_seconds = timeout_seconds

    async def stage(self, upload: UploadFile) -> StagedFile:
        original_filename = clean_filename(upload.filename)
        temp_path = self.temp_dir / _temp_name(original_filename)
        try:
            size = await asyncio.wait_for(
                asyncio.to_thread(_write_payload, upload.file, temp_path),
                timeout=self.timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            temp_path.unlink(missing_ok=True)
            raise FilesystemFault(
                f"Could not stage '{original_filename}': {str(exc) or 'timed out'}",
                filename=original_filename,
            ) from exc
        return StagedFile(original_filename=original_filename, temp_path=temp_path, size=size)

    async def stage_all(self, uploads: Sequence[UploadFile]) -> list[StagedFile]:
        staged: list[StagedFile] = []
        try:
            for upload in uploads:
                staged.append(await self.stage(upload))
        except Exception:
            await self.discard(staged)
            raise
        return staged

    async def discard(self, staged: Iterable[StagedFile]) -> None:
        """Remove temp files that were not promoted."""
        for item in staged:
            try:
                await asyncio.to_thread(item.temp_path.unlink, missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove staged file %s: %s", item.temp_path, exc)
