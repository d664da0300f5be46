"""Shared fixtures for integration tests."""

from __future__ import annotations

import json

import boto3
import pytest
from moto import mock_aws


S3_MANIFEST = {
    "dataset": "casualties",
    "generatedAt": "2024-04-01T06:00:00Z",
    "partitions": [
        {"id": "2023-Q4", "start": "2023-10-07", "end": "2023-12-31", "file": "2023-Q4.json"},
        {"id": "2024-Q1", "start": "2023-12-31", "end": "2024-04-01", "file": "2024-Q1.json"},
    ],
}


@pytest.fixture
def s3_client():
    """Create a mocked S3 client with a test bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="test-bucket")
        yield client


@pytest.fixture
def s3_site(s3_client):
    """Publish 'casualties' under s3://test-bucket/data/casualties/.

    Partition payloads use the producer's {"data": [...]} envelope.
    """
    s3_client.put_object(
        Bucket="test-bucket",
        Key="data/casualties/manifest.json",
        Body=json.dumps(S3_MANIFEST).encode(),
    )
    s3_client.put_object(
        Bucket="test-bucket",
        Key="data/casualties/2023-Q4.json",
        Body=json.dumps({"data": [{"date": "2023-12-30", "killed": 3}]}).encode(),
    )
    s3_client.put_object(
        Bucket="test-bucket",
        Key="data/casualties/2024-Q1.json",
        Body=json.dumps({"data": [{"date": "2024-01-15", "killed": 5}]}).encode(),
    )
    return s3_client
