# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared fixtures for storage tests."""

from collections.abc import Callable
from datetime import datetime

import httpx
import pytest

from oaamonitor.storage.client import S3Client
from oaamonitor.storage.config import S3Config
from oaamonitor.storage.signing import Credentials
from tests.storage.fakes import (
    ACCESS_KEY_ID,
    ENDPOINT,
    FIXED_NOW,
    SECRET_ACCESS_KEY,
    FakeS3,
)


@pytest.fixture
def s3_config() -> S3Config:
    """Configuration pointing at the fake endpoint."""
    return S3Config(
        credentials=Credentials(ACCESS_KEY_ID, SECRET_ACCESS_KEY),
        region="auto",
        endpoint_url=ENDPOINT,
    )


@pytest.fixture
def fake_s3() -> FakeS3:
    """Empty in-memory S3 endpoint."""
    return FakeS3(ACCESS_KEY_ID, SECRET_ACCESS_KEY)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def s3_client(
    s3_config: S3Config,
    fake_s3: FakeS3,
    fixed_clock: Callable[[], datetime],
) -> S3Client:
    """Client wired to the fake endpoint through a mock transport."""
    return S3Client(
        s3_config,
        clock=fixed_clock,
        transport=httpx.MockTransport(fake_s3.handler),
    )
