"""Unit tests for application wiring and startup.

Example Run:
    pytest tests/unit/test_main.py -v
"""

from unittest.mock import patch

import pytest

import main
from ir_gateway.core.config import Settings
from ir_gateway.core.errors import ConfigurationError
from ir_gateway.controller import ControllerError

ACTIONS = """
remotes:
  tv:
    buttons:
      power:
        action:
          type: http
          url: http://hub.local/tv/power
devices:
  - name: tv
    on_threshold_milliamps: 80
"""


@pytest.fixture
def settings(tmp_path):
    actions = tmp_path / "actions.yaml"
    actions.write_text(ACTIONS, encoding="utf-8")
    return Settings(
        controller_class="tests.fakes:FakeController",
        actions_path=actions,
        topic_prefix="home/ir",
        reconnect_delay=1.0,
    )


class TestBuild:
    def test_wires_components(self, settings):
        state, gateway = main.build(settings)
        gateway._inbox.shutdown(wait=True)

        assert state.topic_prefix == "home/ir/"
        assert gateway.reconnect_delay == 1.0
        with state.controller() as controller:
            assert controller.opened is True
        with state.bus() as client:
            assert client is gateway.client
        assert state.config.lookup("tv", "power").url == "http://hub.local/tv/power"

    def test_controller_receives_bridge(self, settings):
        state, gateway = main.build(settings)
        gateway._inbox.shutdown(wait=True)

        with state.controller() as controller:
            on_event = controller.on_event
        assert on_event.state is state

    def test_missing_action_table(self, settings, tmp_path):
        settings.actions_path = tmp_path / "missing.yaml"

        with pytest.raises(ConfigurationError):
            main.build(settings)

    def test_bad_controller(self, settings):
        settings.controller_class = "tests.fakes:Nothing"

        with pytest.raises(ControllerError):
            main.build(settings)


class TestMain:
    @patch("main.configure_logging")
    def test_configuration_error_exits_1(self, mock_logging, tmp_path):
        assert main.main(["-c", str(tmp_path / "missing.ini")]) == 1

    @patch("main.configure_logging")
    def test_controller_error_exits_1(self, mock_logging, tmp_path):
        config = tmp_path / "config.ini"
        config.write_text("[controller]\nclass = tests.fakes:Nothing\n", encoding="utf-8")
        (tmp_path / "actions.yaml").write_text(ACTIONS, encoding="utf-8")

        with patch.dict("os.environ", {"IRGW_ACTIONS": str(tmp_path / "actions.yaml")}):
            assert main.main(["-c", str(config)]) == 1

    def test_parse_args_defaults(self):
        args = main.parse_args([])
        assert args.debug is False
        assert args.config.endswith("config.ini")
