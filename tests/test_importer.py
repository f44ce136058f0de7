import json

import pytest
from sqlalchemy import select

from crm.models.client import Client
from crm.services.importer_service import ClientImporter, ImportValidationError


@pytest.mark.anyio
async def test_import_skips_existing_emails(app, tmp_path):
    seed = tmp_path / "clients.json"
    seed.write_text(
        json.dumps(
            [
                {"first_name": "Ana", "email": "ana@example.com", "city": "Lugo"},
                {"first_name": "Ana dup", "email": "ana@example.com"},
                {"first_name": "No email"},
                {"first_name": "x" * 300},
                "not an object",
            ]
        ),
        encoding="utf-8",
    )

    async with app.state.database.session() as session:
        result = await ClientImporter(session).import_file(seed)
        assert result.clients_created == 2
        assert result.clients_skipped == 1
        assert len(result.errors) == 2

        again = await ClientImporter(session).import_file(seed)
        assert again.clients_created == 1  # rows without email are never de-duplicated
        assert again.clients_skipped == 2

        names = list(await session.scalars(select(Client.first_name).order_by(Client.id)))
        assert names == ["Ana", "No email", "No email"]


def test_import_rejects_non_array_files(tmp_path):
    seed = tmp_path / "clients.json"
    seed.write_text(json.dumps({"first_name": "Ana"}), encoding="utf-8")
    with pytest.raises(ImportValidationError):
        ClientImporter(session=None).read_file(seed)

    with pytest.raises(ImportValidationError):
        ClientImporter(session=None).read_file(tmp_path / "clients.csv")
