"""
Warehouse Loader Utilities

Uploads an exported TSV file to a Cloud Storage bucket and loads it into a
BigQuery table, with automatic retries.
"""

import csv
import logging
import time
from pathlib import Path
from typing import Mapping, Optional

from google.cloud import bigquery, storage

from utils.errors import LoadError
from utils.schemas import FieldKind

logger = logging.getLogger(__name__)

# Field kinds as BigQuery column types
BIGQUERY_TYPES = {
    "STRING": "STRING",
    "INTEGER": "INTEGER",
    "FLOAT": "FLOAT",
    "BOOLEAN": "BOOLEAN",
    "JSON": "JSON",
}


class WarehouseLoader:
    """Moves export files into the warehouse through a staging bucket."""

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        project: Optional[str] = None,
        retries: int = 2,
        storage_client: Optional[storage.Client] = None,
        bigquery_client: Optional[bigquery.Client] = None,
    ) -> None:
        """
        Initialize loader.

        Clients are created lazily from the service account file unless given.

        Args:
            credentials_path: Service account JSON key file
            project: GCP project, defaults to the one in the key file
            retries: Number of retry attempts on failure
            storage_client: Pre-built Cloud Storage client
            bigquery_client: Pre-built BigQuery client
        """
        self.credentials_path = credentials_path
        self.project = project
        self.retries = retries
        self._storage = storage_client
        self._bigquery = bigquery_client

    @property
    def storage_client(self) -> storage.Client:
        if self._storage is None:
            if self.credentials_path:
                self._storage = storage.Client.from_service_account_json(self.credentials_path, project=self.project)
            else:
                self._storage = storage.Client(project=self.project)
        return self._storage

    @property
    def bigquery_client(self) -> bigquery.Client:
        if self._bigquery is None:
            if self.credentials_path:
                self._bigquery = bigquery.Client.from_service_account_json(self.credentials_path, project=self.project)
            else:
                self._bigquery = bigquery.Client(project=self.project)
        return self._bigquery

    def _job_config(
        self, header: list[str], field_types: Optional[Mapping[str, FieldKind]]
    ) -> bigquery.LoadJobConfig:
        job_config = bigquery.LoadJobConfig(
            source_format=bigquery.SourceFormat.CSV,
            field_delimiter="\t",
            skip_leading_rows=1,
            allow_quoted_newlines=True,
            write_disposition=bigquery.WriteDisposition.WRITE_APPEND,
        )
        if field_types:
            # CSV loads match columns by position, so the schema follows the file header
            job_config.schema = [
                bigquery.SchemaField(name, BIGQUERY_TYPES[field_types.get(name, "STRING")]) for name in header
            ]
        else:
            job_config.autodetect = True
        return job_config

    def load(
        self,
        dataset: str,
        table: str,
        bucket: str,
        file_path: str,
        field_types: Optional[Mapping[str, FieldKind]] = None,
    ) -> str:
        """
        Upload file to the bucket and load it into `<dataset>.<table>`.

        Args:
            dataset: BigQuery dataset ID
            table: BigQuery table ID
            bucket: Staging bucket name
            file_path: Local TSV file with header row
            field_types: Optional declared column types; autodetect otherwise

        Returns:
            ID of the completed load job

        Raises:
            FileNotFoundError: If local file doesn't exist
            LoadError: If upload or load fails after all retries
        """
        local_file = Path(file_path)
        if not local_file.is_file():
            raise FileNotFoundError(f"Local file not found: {file_path}")

        header = _read_header(local_file)
        source_uri = f"gs://{bucket}/{local_file.name}"
        destination = f"{dataset}.{table}"
        last_error = None

        for attempt in range(self.retries + 1):
            try:
                blob = self.storage_client.bucket(bucket).blob(local_file.name)
                blob.upload_from_filename(str(local_file))
                logger.info("Uploaded to bucket: uri=%s", source_uri)

                job = self.bigquery_client.load_table_from_uri(
                    source_uri, destination, job_config=self._job_config(header, field_types)
                )
                job.result()

                logger.info("Loaded into warehouse: table=%s, job_id=%s", destination, job.job_id)
                return job.job_id

            except Exception as e:
                last_error = e

                if attempt < self.retries:
                    wait_time = 2 ** attempt  # Exponential backoff: 1s, 2s, 4s
                    logger.warning(
                        "Warehouse load failed (attempt %d/%d), retrying in %ds: %s",
                        attempt + 1, self.retries + 1, wait_time, str(e)
                    )
                    time.sleep(wait_time)
                else:
                    logger.error(
                        "Warehouse load failed after %d attempts: table=%s, error=%s",
                        self.retries + 1, destination, str(e)
                    )

        raise LoadError(f"Warehouse load failed after {self.retries + 1} attempts: {last_error}") from last_error


def _read_header(path: Path) -> list[str]:
    """Column names from the first row of a tab-delimited file."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return next(csv.reader(f, delimiter="\t"), [])
