# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test packages."""

from collections.abc import Iterator

import pytest

from oaamonitor.logging import SecretFilter


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep tests away from real credentials and ``.env`` files.

    Marks dotenv loading as already done and strips the storage
    variables from the process environment.
    """
    monkeypatch.setattr("oaamonitor.dotenv_loader._dotenv_loaded", True)
    for name in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_REGION",
        "AWS_ENDPOINT_URL_S3",
        "DATABASE_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    SecretFilter.clear_secrets()
