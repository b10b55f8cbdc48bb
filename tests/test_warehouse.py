from __future__ import annotations

import pytest
from google.cloud import bigquery

from utils import warehouse
from utils.errors import LoadError
from utils.warehouse import WarehouseLoader


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name

    def upload_from_filename(self, filename):
        if self.bucket.client.upload_failures:
            self.bucket.client.upload_failures -= 1
            raise ConnectionError("upload interrupted")
        self.bucket.client.uploads.append((self.bucket.name, self.name, filename))


class FakeBucket:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def blob(self, name):
        return FakeBlob(self, name)


class FakeStorageClient:
    def __init__(self, upload_failures=0):
        self.upload_failures = upload_failures
        self.uploads = []

    def bucket(self, name):
        return FakeBucket(self, name)


class FakeJob:
    job_id = "job_1"

    def result(self):
        return self


class FakeBigQueryClient:
    def __init__(self):
        self.loads = []

    def load_table_from_uri(self, uri, destination, job_config=None):
        self.loads.append((uri, destination, job_config))
        return FakeJob()


@pytest.fixture
def tsv_file(tmp_path):
    path = tmp_path / "output.tsv"
    path.write_text("id\tstatus\nsub_1\tactive\n")
    return path


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(warehouse.time, "sleep", lambda seconds: None)


def test_load_uploads_then_loads(tsv_file):
    storage_client = FakeStorageClient()
    bq_client = FakeBigQueryClient()
    loader = WarehouseLoader(storage_client=storage_client, bigquery_client=bq_client)

    job_id = loader.load("stripe", "initial_load", "my-bucket", str(tsv_file))

    assert job_id == "job_1"
    assert storage_client.uploads == [("my-bucket", "output.tsv", str(tsv_file))]
    uri, destination, config = bq_client.loads[0]
    assert uri == "gs://my-bucket/output.tsv"
    assert destination == "stripe.initial_load"
    assert config.field_delimiter == "\t"
    assert config.skip_leading_rows == 1
    assert config.autodetect is True
    assert config.write_disposition == bigquery.WriteDisposition.WRITE_APPEND


def test_schema_follows_file_header_order(tmp_path):
    path = tmp_path / "output.tsv"
    path.write_text("id\tstatus\tquantity\nsub_1\tactive\t2\n")
    bq_client = FakeBigQueryClient()
    loader = WarehouseLoader(storage_client=FakeStorageClient(), bigquery_client=bq_client)

    loader.load("stripe", "subs", "b", str(path), field_types={"quantity": "INTEGER", "status": "STRING", "id": "STRING"})

    config = bq_client.loads[0][2]
    assert [(f.name, f.field_type) for f in config.schema] == [
        ("id", "STRING"),
        ("status", "STRING"),
        ("quantity", "INTEGER"),
    ]
    assert not config.autodetect


def test_undeclared_header_column_loads_as_string(tsv_file):
    bq_client = FakeBigQueryClient()
    loader = WarehouseLoader(storage_client=FakeStorageClient(), bigquery_client=bq_client)

    loader.load("stripe", "subs", "b", str(tsv_file), field_types={"id": "STRING"})

    config = bq_client.loads[0][2]
    assert [(f.name, f.field_type) for f in config.schema] == [("id", "STRING"), ("status", "STRING")]


def test_load_retries_then_succeeds(tsv_file):
    storage_client = FakeStorageClient(upload_failures=1)
    loader = WarehouseLoader(retries=2, storage_client=storage_client, bigquery_client=FakeBigQueryClient())

    assert loader.load("stripe", "t", "b", str(tsv_file)) == "job_1"
    assert len(storage_client.uploads) == 1


def test_load_gives_up_after_retries(tsv_file):
    loader = WarehouseLoader(
        retries=1,
        storage_client=FakeStorageClient(upload_failures=5),
        bigquery_client=FakeBigQueryClient(),
    )

    with pytest.raises(LoadError):
        loader.load("stripe", "t", "b", str(tsv_file))


def test_load_missing_file(tmp_path):
    loader = WarehouseLoader(storage_client=FakeStorageClient(), bigquery_client=FakeBigQueryClient())

    with pytest.raises(FileNotFoundError):
        loader.load("stripe", "t", "b", str(tmp_path / "missing.tsv"))
