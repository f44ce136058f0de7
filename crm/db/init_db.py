import logging

from crm.core.config import Settings
from crm.db.session import Database
from crm.models import Client, Order  # noqa: F401
from crm.services.event_log_service import log_event
from crm.services.importer_service import ClientImporter, ImportValidationError

logger = logging.getLogger(__name__)


async def import_seed_clients(database: Database, settings: Settings) -> None:
    seed_file = settings.clients_seed_file
    if seed_file is None or not seed_file.exists():
        logger.info("No client seed file found for import.")
        return

    async with database.session() as session:
        importer = ClientImporter(session, timeout_seconds=settings.store_timeout_seconds)
        try:
            result = await importer.import_file(seed_file)
        except ImportValidationError as exc:
            logger.error("Client import skipped: %s", exc)
            return

    for error in result.errors:
        logger.warning("Client import: %s", error)
    log_event(
        "import_clients",
        f"file={seed_file.as_posix()}, created={result.clients_created}, skipped={result.clients_skipped}",
    )


async def init_db(database: Database, settings: Settings) -> None:
    await database.create_all(reset=settings.reset_db_on_startup)
    await import_seed_clients(database, settings)
