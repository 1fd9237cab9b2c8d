from __future__ import annotations

import argparse
import logging
import random
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from catalog_sync.config import Settings, get_settings
from catalog_sync.db import build_engine, build_session_factory, init_db
from catalog_sync.errors import CatalogSyncError, ConfigurationError
from catalog_sync.events import EventSimulator, EventWeights
from catalog_sync.generator import DatasetGenerator, GenerationReport
from catalog_sync.instrumentation import memory, timing
from catalog_sync.logging_setup import configure_logging
from catalog_sync.reconciler import CatalogReconciler, DeletePolicy, ReconcileReport, read_delta_lines
from catalog_sync.store import CatalogStore

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def parse_size(value: str | None) -> int:
    if value is None:
        raise ConfigurationError("Missing 'size' parameter")
    try:
        size = int(value)
    except ValueError as exc:
        raise ConfigurationError(f"'size' must be a positive integer, got {value!r}") from exc
    if size < 1:
        raise ConfigurationError(f"'size' must be a positive integer, got {value!r}")
    return size


def load_settings(database_url: str | None = None) -> Settings:
    try:
        settings = get_settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    return settings


def build_store(session, settings: Settings) -> CatalogStore:
    return CatalogStore(
        session,
        retry_attempts=settings.write_retry_attempts,
        retry_backoff_seconds=settings.write_retry_backoff_seconds,
    )


def run_generate(size: int, output: str, settings: Settings, seed: int | None = None) -> GenerationReport:
    weights = EventWeights(
        delete=settings.delete_weight,
        update=settings.update_weight,
        add=settings.add_weight,
        unchanged=settings.unchanged_weight,
    )
    rng = random.Random(seed)

    engine = build_engine(settings.database_url)
    try:
        SessionLocal = build_session_factory(engine)
        # The output must be writable before the table is reset.
        with open(output, "w", encoding="utf-8", newline="") as out, SessionLocal() as db:
            generator = DatasetGenerator(build_store(db, settings), EventSimulator(weights, rng=rng), rng=rng)
            generator.prepare()
            with memory("Generate dataset"), timing("Generate dataset"):
                return generator.run(size, out)
    finally:
        engine.dispose()


def run_update(input_path: str, settings: Settings, batch_size: int, delete_policy: DeletePolicy) -> ReconcileReport:
    engine = build_engine(settings.database_url)
    try:
        init_db(engine)
        SessionLocal = build_session_factory(engine)
        with SessionLocal() as db:
            reconciler = CatalogReconciler(build_store(db, settings), batch_size=batch_size, delete_policy=delete_policy)
            with memory("Update dataset"), timing("Update dataset"):
                return reconciler.run(read_delta_lines(input_path))
    finally:
        engine.dispose()


def _finish(action) -> int:
    try:
        action()
    except (CatalogSyncError, SQLAlchemyError, OSError) as exc:
        print("FAIL")
        logger.error("%s: %s", type(exc).__name__, exc)
        logger.debug("Failure details", exc_info=exc)
        return EXIT_FAILURE
    except Exception:
        print("FAIL")
        logger.exception("Unexpected failure")
        return EXIT_FAILURE
    print("SUCCESS")
    return EXIT_SUCCESS


def generate_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a test product catalog and its delta file")
    parser.add_argument("--size", default=None, help="Number of products to generate")
    parser.add_argument("--output", default=None, help="Delta file to write (truncated first)")
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for product ids, prices and events (timestamps still follow the wall clock)",
    )
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args(argv)

    configure_logging()

    def _action() -> None:
        size = parse_size(args.size)
        settings = load_settings(args.database_url)
        configure_logging(settings.log_level)
        run_generate(size, args.output or settings.delta_file, settings, seed=args.seed)

    return _finish(_action)


def update_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Reconcile a delta file into the product catalog")
    parser.add_argument("--input", default=None, help="Delta file to replay")
    parser.add_argument("--batch-size", type=int, default=None)
    parser.add_argument(
        "--delete-policy",
        default=None,
        choices=[policy.value for policy in DeletePolicy],
        help="tombstone: delete rows carrying deleted_at; full-scan: delete stored ids missing from the file",
    )
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args(argv)

    configure_logging()

    def _action() -> None:
        settings = load_settings(args.database_url)
        configure_logging(settings.log_level)
        batch_size = args.batch_size if args.batch_size is not None else settings.batch_size
        delete_policy = DeletePolicy(args.delete_policy or settings.delete_policy)
        run_update(args.input or settings.delta_file, settings, batch_size, delete_policy)

    return _finish(_action)

