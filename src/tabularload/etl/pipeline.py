"""
Import pipeline implementation.

Drives every resource of a package through table definition,
materialization and row import, and collects the outcome into a
LoadReport.
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone

from tabularload.config.settings import LoaderConfig
from tabularload.descriptor.models import PackageDescriptor, ResourceSpec
from tabularload.errors import (
    IncompatibleTableError,
    ResourceTimeoutError,
    SchemaError,
    StoreWriteError,
    StructuralError,
)
from tabularload.ingestion.importer import ImportStats, RowImporter
from tabularload.report.core import LoadReport, ResourceReport
from tabularload.schema.table import TableDefinition, build_table_definition
from tabularload.store import Store, create_store, materialize
from tabularload.utils.hashing import hash_descriptor, hash_file_content
from tabularload.utils.logging import get_logger, log_context

log = get_logger(__name__)

# Errors that end one resource but never the run
RESOURCE_ERRORS = (
    SchemaError,
    StructuralError,
    IncompatibleTableError,
    ResourceTimeoutError,
    StoreWriteError,
)


class ImportPipeline:
    """
    Import pipeline for tabular data packages.

    Resources are independent: a failing resource is recorded and the run
    continues with the next one. Only an unreachable store aborts the run.

    By default resources are processed one after another in declaration
    order. With ``concurrency.parallel`` enabled, whole resources run on a
    bounded thread pool; a resource's table is always materialized before
    its first batch, and all batches of one table come from one worker.
    """

    def __init__(self, config: LoaderConfig | None = None) -> None:
        """
        Initialize import pipeline.

        Args:
            config: Loader configuration; defaults apply when omitted.
        """
        self.config = config or LoaderConfig()

    def run(
        self, descriptor: PackageDescriptor, store: Store | None = None
    ) -> LoadReport:
        """
        Load every resource of a package.

        Args:
            descriptor: Parsed package descriptor.
            store: Destination store. When omitted, the configured store (or
                the in-memory default) is created and closed after the run.

        Returns:
            LoadReport covering every resource, in declaration order.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        owns_store = store is None
        target = store if store is not None else create_store(self.config.store)

        report = LoadReport(
            package=descriptor.name,
            descriptor_hash=hash_descriptor(descriptor),
            started_at=datetime.now(timezone.utc),
        )
        log.info(
            "Starting package load",
            package=descriptor.name,
            resources=len(descriptor.resources),
            parallel=self.config.concurrency.parallel,
        )

        try:
            jobs = self._plan(descriptor, report)
            if self.config.concurrency.parallel and len(jobs) > 1:
                self._run_parallel(descriptor, jobs, target)
            else:
                for resource, definition, entry in jobs:
                    self._load_resource(descriptor, resource, definition, entry, target)
        finally:
            report.finished_at = datetime.now(timezone.utc)
            if owns_store:
                target.close()

        log.info(
            "Package load finished",
            package=descriptor.name,
            succeeded=report.succeeded,
            failed=[r.resource for r in report.failed],
            rows_inserted=report.rows_inserted,
        )
        return report

    def _plan(
        self, descriptor: PackageDescriptor, report: LoadReport
    ) -> list[tuple[ResourceSpec, TableDefinition, ResourceReport]]:
        """
        Build table definitions for all resources.

        Resources whose schema cannot be mapped, or whose table name is
        already taken by an earlier resource, are recorded as failed here
        and never touch the store.
        """
        jobs = []
        claimed: dict[str, str] = {}
        prefix = self.config.ingestion.table_prefix

        for resource in descriptor.resources:
            entry = ResourceReport(resource=resource.name)
            report.resources.append(entry)
            try:
                definition = build_table_definition(resource, table_prefix=prefix)
                if definition.name in claimed:
                    msg = (
                        f"Table name '{definition.name}' is already used by "
                        f"resource '{claimed[definition.name]}'"
                    )
                    raise SchemaError(msg)
            except SchemaError as e:
                entry.record_error(e)
                log.error(
                    "Cannot map resource schema", resource=resource.name, error=str(e)
                )
                continue

            claimed[definition.name] = resource.name
            entry.table = definition.name
            entry.type_warnings = list(definition.type_warnings)
            jobs.append((resource, definition, entry))
        return jobs

    def _run_parallel(
        self,
        descriptor: PackageDescriptor,
        jobs: list[tuple[ResourceSpec, TableDefinition, ResourceReport]],
        store: Store,
    ) -> None:
        """Run whole resources on a bounded pool; report order stays declarative."""
        executor = ThreadPoolExecutor(max_workers=self.config.concurrency.max_workers)
        try:
            futures = {
                executor.submit(
                    self._load_resource, descriptor, resource, definition, entry, store
                ): resource.name
                for resource, definition, entry in jobs
            }
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    log.error(
                        "Resource worker aborted",
                        resource=futures[future],
                        error=str(e),
                    )
                    raise
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

    def _load_resource(
        self,
        descriptor: PackageDescriptor,
        resource: ResourceSpec,
        definition: TableDefinition,
        entry: ResourceReport,
        store: Store,
    ) -> None:
        """Materialize one table and import its rows into it."""
        start = time.monotonic()
        timeout = self.config.ingestion.resource_timeout
        deadline = start + timeout if timeout is not None else None
        importer = RowImporter(
            store,
            batch_size=self.config.batch_size,
            encoding=self.config.ingestion.encoding,
        )

        with log_context(package=descriptor.name, resource=resource.name):
            try:
                outcome = materialize(definition, store)
                entry.table_status = outcome.status
                outcome.raise_for_status()

                source = descriptor.data_path(resource)
                stats = ImportStats(resource=resource.name)
                try:
                    importer.import_rows(
                        source, resource, definition, deadline=deadline, stats=stats
                    )
                finally:
                    entry.rows_attempted = stats.rows_attempted
                    entry.rows_inserted = stats.rows_inserted
                    entry.skipped = stats.skipped
                    entry.warnings = stats.warnings
                entry.source_digest = hash_file_content(source)
            except RESOURCE_ERRORS as e:
                entry.record_error(e)
                log.error(
                    "Resource failed",
                    table=definition.name,
                    error_kind=type(e).__name__,
                    error=str(e),
                )
            finally:
                entry.duration_seconds = time.monotonic() - start


def run(
    descriptor: PackageDescriptor,
    store: Store | None = None,
    config: LoaderConfig | None = None,
) -> LoadReport:
    """
    Convenience function to load a package.

    Args:
        descriptor: Parsed package descriptor.
        store: Destination store; see ImportPipeline.run for the default.
        config: Loader configuration.

    Returns:
        LoadReport of the run.
    """
    return ImportPipeline(config).run(descriptor, store)
