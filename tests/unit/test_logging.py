import logging

import pytest

from src.slidesync.logging import configure_logging, resolve_level


@pytest.mark.unit
@pytest.mark.parametrize(
    ("value", "expected"),
    [(logging.DEBUG, logging.DEBUG), ("warning", logging.WARNING), (" Info ", logging.INFO)],
)
def test_resolve_level_accepts_names_and_numbers(value, expected) -> None:
    assert resolve_level(value) == expected


@pytest.mark.unit
def test_resolve_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        resolve_level("chatty")


@pytest.mark.unit
def test_configure_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging("warning", json_output=False)
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
