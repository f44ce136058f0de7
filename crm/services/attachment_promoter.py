from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Callable

from crm.core.errors import FilesystemFault
from crm.services.attachment_stager import StagedFile

logger = logging.getLogger(__name__)


def final_filename(sequence: int, original_filename: str) -> str:
    return f"Image-{sequence}-{original_filename}"


class AttachmentPromoter:
    """Moves staged uploads into ``<root>/<order-id>/``.

    A batch is all-or-nothing: when one move fails, the files this batch
    already promoted are removed again (and the order directory, if the batch
    created it) before a FilesystemFault naming the failed file is raised.
    A move that timed out keeps running in its thread, so its target name is
    swept as well; a move that lands after the sweep is left behind.
    Moves run in worker threads, at most ``workers`` at a time across the
    whole process.
    """

    def __init__(self, root: Path, workers: int = 4, timeout_seconds: float = 30.0) -> None:
        self.root = Path(root)
        self.workers = workers
        self.timeout_seconds = timeout_seconds
        self._slots = asyncio.Semaphore(workers)

    def order_directory(self, order_id: int) -> Path:
        return self.root / str(order_id)

    def resolve(self, relative_path: str) -> Path:
        return self.root / Path(relative_path)

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        async with self._slots:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs),
                timeout=self.timeout_seconds,
            )

    async def promote(self, order_id: int, staged: Sequence[StagedFile], offset: int = 0) -> list[str]:
        if not staged:
            return []

        order_dir = self.order_directory(order_id)
        created_dir = not order_dir.exists()
        try:
            await self._run(order_dir.mkdir, parents=True, exist_ok=True)
        except (OSError, asyncio.TimeoutError) as exc:
            raise FilesystemFault(f"Could not create attachment directory for order {order_id}: {exc}") from exc
        if created_dir:
            logger.debug("Created attachment directory %s", order_dir)

        targets = [
            f"{order_id}/{final_filename(offset + index + 1, item.original_filename)}"
            for index, item in enumerate(staged)
        ]

        async def _promote_one(item: StagedFile, target: str) -> str:
            await self._run(shutil.move, str(item.temp_path), str(self.resolve(target)))
            return target

        results = await asyncio.gather(
            *(_promote_one(item, target) for item, target in zip(staged, targets)),
            return_exceptions=True,
        )

        failures = [(item, result) for item, result in zip(staged, results) if isinstance(result, BaseException)]
        if failures:
            promoted = [result for result in results if isinstance(result, str)]
            timed_out = [
                target for target, result in zip(targets, results) if isinstance(result, asyncio.TimeoutError)
            ]
            await self.rollback(order_id, promoted + timed_out, remove_directory=created_dir)
            item, error = failures[0]
            if not isinstance(error, Exception):
                raise error
            reason = str(error) or error.__class__.__name__
            raise FilesystemFault(
                f"Could not promote '{item.original_filename}' for order {order_id}: {reason}",
                filename=item.original_filename,
            ) from error

        return list(results)

    async def rollback(self, order_id: int, relative_paths: Sequence[str], remove_directory: bool = False) -> None:
        """Best-effort removal of files promoted by a batch that did not complete."""
        for relative_path in relative_paths:
            try:
                await self._run(self.resolve(relative_path).unlink, missing_ok=True)
            except (OSError, asyncio.TimeoutError) as exc:
                logger.error("Could not roll back attachment %s: %s", relative_path, exc)

        if remove_directory:
            try:
                await self._run(shutil.rmtree, self.order_directory(order_id), ignore_errors=True)
            except asyncio.TimeoutError:
                logger.error("Timed out removing attachment directory for order %s", order_id)

    async def remove_order_directory(self, order_id: int) -> bool:
        order_dir = self.order_directory(order_id)
        if not order_dir.exists():
            return False
        try:
            await self._run(shutil.rmtree, order_dir)
        except (OSError, asyncio.TimeoutError) as exc:
            raise FilesystemFault(
                f"Could not remove attachment directory for order {order_id}: {str(exc) or 'timed out'}"
            ) from exc
        logger.info("Deleted directory: %s", order_dir)
        return True
