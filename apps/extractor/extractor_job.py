"""
Extraction Job - Fetch, Flatten, Export and Load

Runs one extraction end to end:
1. Fetch billing events for the configured time window and event type
2. Drill into each event's `data.object` payload
3. Flatten payloads (and coerce them when a field type map is configured)
4. Write `<EXPORT_DIR>/<EXPORT_STEM>.tsv` and `.json`
5. Hand the TSV to the warehouse loader

All collaborators are built explicitly in `build_job()` from settings.

Usage:
    from apps.extractor.extractor_job import run_extraction

    output_file = await run_extraction()
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

from apps.extractor.client import StripeClient
from apps.saver.exporter import ExportResult, RecordExporter
from apps.transformer.coerce import coerce_records
from apps.transformer.flatten import flatten_records
from utils.config import Settings, get_settings
from utils.errors import ConfigurationError, LoadError
from utils.lookup import load_field_types
from utils.schemas import FieldKind
from utils.warehouse import WarehouseLoader

logger = logging.getLogger(__name__)


@dataclass
class LoadTarget:
    """Where the exported TSV ends up in the warehouse."""

    dataset: str
    table: str
    bucket: str


@dataclass
class ExtractionJob:
    """One configured extraction run and its collaborators."""

    client: StripeClient
    exporter: RecordExporter
    output_stem: str
    page_budget: int = 1
    loader: Optional[WarehouseLoader] = None
    load_target: Optional[LoadTarget] = None
    field_types: Optional[dict[str, FieldKind]] = None

    def transform(self, payloads: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Flatten payloads, then keep and cast declared fields if a type map is set."""
        records = flatten_records(payloads)
        if self.field_types:
            records = coerce_records(records, self.field_types)
        return records

    async def load(self, tsv_path: str) -> None:
        """Hand the TSV to the warehouse loader; failures are logged, not raised."""
        if self.loader is None or self.load_target is None:
            logger.info("Warehouse load disabled, skipping: path=%s", tsv_path)
            return

        try:
            await asyncio.to_thread(
                self.loader.load,
                self.load_target.dataset,
                self.load_target.table,
                self.load_target.bucket,
                tsv_path,
                self.field_types,
            )
        except (LoadError, OSError) as e:
            logger.error(
                "Warehouse load failed",
                extra={"file_path": tsv_path, "table": self.load_target.table, "error": str(e)},
            )

    async def run(self) -> ExportResult:
        """
        Execute the extraction.

        Returns:
            ExportResult with paths of the written files

        Raises:
            ConfigurationError: If the client is not configured
            RequestFailedError: If fetching any page fails
            PaginationError: If a continuation page cannot be requested
            ExportError: If writing the output files fails
        """
        start_time = time.time()

        events = await self.client.fetch_all(retries_remaining=self.page_budget)
        payloads = [event.data.object for event in events]
        records = self.transform(payloads)

        columns = list(self.field_types) if self.field_types else None
        result = self.exporter.export(records, self.output_stem, columns)

        await self.load(result.tsv_path)

        logger.info(
            "Extraction complete: events=%d, records=%d, tsv=%s, elapsed=%.3fs",
            len(events), len(records), result.tsv_path, time.time() - start_time
        )
        return result


def build_job(config: Optional[Settings] = None) -> ExtractionJob:
    """
    Construct an ExtractionJob and its collaborators from settings.

    Args:
        config: Settings to use, defaults to the cached application settings

    Returns:
        Ready-to-run job

    Raises:
        ConfigurationError: If the API token is missing or the start date is invalid
    """
    config = config or get_settings()

    if not config.STRIPE_TOKEN:
        raise ConfigurationError("STRIPE_TOKEN is not configured")

    client = StripeClient(
        config.STRIPE_TOKEN,
        base_url=config.STRIPE_API_BASE,
        timeout=config.API_TIMEOUT,
        page_delay=config.PAGE_DELAY_SECONDS,
        max_retries=config.EXTRACT_MAX_RETRIES,
        reference_tz=config.REFERENCE_TIMEZONE,
        lead_time=timedelta(minutes=config.START_LEAD_MINUTES),
    )
    client.set_start_date(config.START_DATE or None)
    client.set_category_selector(config.STRIPE_EVENT_TYPE)

    field_types = load_field_types(config.FIELD_TYPES_PATH) if config.FIELD_TYPES_PATH else None

    loader = None
    load_target = None
    if config.LOAD_ENABLED:
        loader = WarehouseLoader(
            credentials_path=config.GCP_CREDENTIALS_PATH,
            project=config.GCP_PROJECT,
            retries=config.LOAD_MAX_RETRIES,
        )
        load_target = LoadTarget(
            dataset=config.BIGQUERY_DATASET,
            table=config.BIGQUERY_TABLE,
            bucket=config.GCS_BUCKET,
        )

    return ExtractionJob(
        client=client,
        exporter=RecordExporter(),
        output_stem=str(Path(config.EXPORT_DIR) / config.EXPORT_STEM),
        page_budget=config.EXTRACT_PAGE_BUDGET,
        loader=loader,
        load_target=load_target,
        field_types=field_types,
    )


async def run_extraction(config: Optional[Settings] = None) -> str:
    """
    Build and run one extraction job.

    Returns:
        Path of the written TSV file
    """
    job = build_job(config)
    result = await job.run()
    return result.tsv_path
