"""Shared pytest fixtures for cache-policy tests."""

import copy
import logging

import pytest
import structlog

from cache_policy.compiler import compile_configuration

RAW_CONFIG = {
    "dashboard": {
        "origin": "https://dashboard.example.com",
        "aliases": ["dashboard-host", "alias.example.com"],
        "log": "example-log.s3.amazonaws.com/prefix",
        "primary": True,
        "behaviors": [
            {
                "path": ["/hello*", "/world*"],
                "headers": ["Accept-Language"],
                "cookies": ["session"],
            },
            {
                "path": "/s3_asset/*",
                "headers": [],
                "cookies": "none",
                "proxy": "s3_proxy",
            },
            {
                "path": "/*.png",
                "headers": [],
                "cookies": "none",
            },
        ],
        "default": {
            "headers": ["Authorization"],
            "cookies": "all",
        },
    },
    "s3_proxy": {
        "origin": "example.s3.amazonaws.com/prefix",
        "aliases": ["assets.example.com"],
        "behaviors": [
            {"path": "/s3_asset/private/*", "cookies": "all"},
        ],
        "default": {
            "headers": ["Origin"],
            "cookies": "none",
        },
    },
}


@pytest.fixture
def raw_config():
    """Raw two-backend configuration: a dashboard proxying assets to S3.

    Returns:
        dict: Deep copy safe to mutate in a test
    """
    return copy.deepcopy(RAW_CONFIG)


@pytest.fixture
def configuration(raw_config):
    """Compiled configuration built from raw_config."""
    return compile_configuration(raw_config)


def behavior(path=None, headers=(), cookies="none", proxy=None):
    """Build a raw behavior entry."""
    entry = {"headers": list(headers), "cookies": cookies}
    if path is not None:
        entry["path"] = path
    if proxy is not None:
        entry["proxy"] = proxy
    return entry


@pytest.fixture
def make_behavior():
    return behavior


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration after each test.

    The CLI configures logging on every invocation; this keeps handlers
    bound to closed test streams from leaking into later tests.
    """
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers = []
