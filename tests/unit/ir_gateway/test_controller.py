"""Unit tests for the controller interface and loader.

Example Run:
    pytest tests/unit/ir_gateway/test_controller.py -v
"""

from unittest.mock import MagicMock

import pytest

from ir_gateway.controller import (
    ButtonPress,
    Controller,
    ControllerError,
    load_controller,
)
from tests.fakes import FakeController


class TestLoadController:
    def test_load(self):
        on_event = MagicMock()

        controller = load_controller(
            "tests.fakes:FakeController", on_event, {"port": "/dev/ttyAMA0"}
        )

        assert isinstance(controller, FakeController)
        assert controller.options == {"port": "/dev/ttyAMA0"}
        controller.press(ButtonPress("tv", "power"))
        on_event.assert_called_once_with(ButtonPress("tv", "power"))

    @pytest.mark.parametrize("path", ["tests.fakes", ":FakeController", "tests.fakes:"])
    def test_malformed_path(self, path):
        with pytest.raises(ControllerError, match="module:ClassName"):
            load_controller(path, MagicMock())

    def test_missing_module(self):
        with pytest.raises(ControllerError, match="cannot import"):
            load_controller("no_such_module_here:Hat", MagicMock())

    def test_missing_class(self):
        with pytest.raises(ControllerError, match="not a Controller"):
            load_controller("tests.fakes:NoSuchClass", MagicMock())

    def test_not_a_controller(self):
        with pytest.raises(ControllerError, match="not a Controller"):
            load_controller("tests.fakes:ControllerError", MagicMock())


def test_controller_is_abstract():
    with pytest.raises(TypeError):
        Controller(MagicMock())


def test_default_current_channels():
    assert tuple(FakeController().current_channels) == (0, 1)
