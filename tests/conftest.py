from __future__ import annotations

import pytest

CONFIG_VARS = (
    "BACKOFFICE_ENV",
    "BACKOFFICE_API_BASE_URL",
    "BACKOFFICE_API_BASE_URL_DEV",
    "BACKOFFICE_API_BASE_URL_STAGING",
    "BACKOFFICE_TIMEOUT_SECONDS",
    "BACKOFFICE_CONNECT_TIMEOUT_SECONDS",
    "BACKOFFICE_READ_TIMEOUT_SECONDS",
    "BACKOFFICE_MAX_CONNECTIONS",
    "BACKOFFICE_VERIFY_SSL",
    "BACKOFFICE_SEARCH_DEBOUNCE_MS",
    "BACKOFFICE_STATS_PAGE_SIZE",
    "BACKOFFICE_EXPORT_PAGE_SIZE",
)


@pytest.fixture
def clean_env(monkeypatch):
    # set-then-delete so teardown also removes values a .env file loaded
    for name in CONFIG_VARS:
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch
