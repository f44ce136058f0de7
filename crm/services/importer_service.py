from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.schemas.client import ClientCreate
from crm.services.client_store import ClientStore


@dataclass
class ImportedRow:
    data: dict[str, Any]
    row_number: int


@dataclass
class ImportResult:
    clients_created: int = 0
    clients_skipped: int = 0
    errors: list[str] = field(default_factory=list)


class ImportValidationError(Exception):
    pass


class ClientImporter:
    """Loads clients from a JSON array, skipping emails that already exist."""

    SUPPORTED_SUFFIXES = {".json"}

    def __init__(self, session: AsyncSession, timeout_seconds: float = 10.0) -> None:
        self.session = session
        self.clients = ClientStore(session, timeout_seconds)

    def read_file(self, file_path: str | Path) -> list[ImportedRow]:
        path = Path(file_path)
        if path.suffix.lower() not in self.SUPPORTED_SUFFIXES:
            raise ImportValidationError(f"Unsupported file type: {path.suffix}")

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ImportValidationError(f"{path.name} is not valid JSON: {exc}") from exc

        if not isinstance(raw, list):
            raise ImportValidationError(f"{path.name} must contain a JSON array of clients")
        return [ImportedRow(data=item, row_number=index) for index, item in enumerate(raw, start=1)]

    async def import_rows(self, rows: list[ImportedRow]) -> ImportResult:
        result = ImportResult()
        seen_emails: set[str] = set()

        for row in rows:
            if not isinstance(row.data, dict):
                result.errors.append(f"Row {row.row_number}: expected an object")
                continue
            try:
                payload = ClientCreate.model_validate(row.data)
            except ValidationError as exc:
                result.errors.append(f"Row {row.row_number}: {exc.errors()[0]['msg']}")
                continue

            email = (payload.email or "").strip()
            if email:
                if email in seen_emails or await self.clients.find_by_email(email) is not None:
                    result.clients_skipped += 1
                    continue
                seen_emails.add(email)

            await self.clients.create(payload.model_dump())
            result.clients_created += 1

        return result

    async def import_file(self, file_path: str | Path) -> ImportResult:
        return await self.import_rows(self.read_file(file_path))
