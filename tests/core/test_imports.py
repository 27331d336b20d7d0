"""Every mailspine module imports cleanly (module-level loggers included)."""

from __future__ import annotations

import importlib
import pkgutil

import pytest
import structlog

import mailspine

MODULES = sorted(
    info.name for info in pkgutil.walk_packages(mailspine.__path__, prefix="mailspine.")
)


def test_walk_finds_every_package():
    for package in ("core", "migrations", "health", "deploy", "ops", "cli"):
        assert f"mailspine.{package}" in MODULES


@pytest.mark.parametrize("name", MODULES)
def test_module_imports(name):
    module = importlib.import_module(name)
    assert module.__name__ == name


def test_get_logger_works_before_configuration():
    structlog.reset_defaults()
    from mailspine.core.logging import get_logger

    logger = get_logger("mailspine.unconfigured")
    logger.debug("not.configured.yet")
