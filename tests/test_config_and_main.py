"""Settings and process entry point tests."""

from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from dou import main as main_module
from dou.core.config import Settings, get_settings
from dou.errors import EnvelopeEncodingError, ListenError, ServerClosedError


class _SettingsEnvCase(unittest.TestCase):
    _env_keys = (
        "DOU_ADDRESS",
        "DOU_READ_TIMEOUT",
        "DOU_WRITE_TIMEOUT",
        "DOU_MAX_HEADER_BYTES",
        "DOU_ACCESS_LOG",
    )

    def setUp(self) -> None:
        self._old_env = {k: os.environ.get(k) for k in self._env_keys}
        for key in self._env_keys:
            os.environ.pop(key, None)
        get_settings.cache_clear()

    def tearDown(self) -> None:
        for key, value in self._old_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        get_settings.cache_clear()


class SettingsTests(_SettingsEnvCase):
    def test_defaults(self) -> None:
        settings = get_settings()

        self.assertEqual(settings.address, ":8099")
        self.assertEqual(settings.read_timeout, 0)
        self.assertEqual(settings.write_timeout, 0)
        self.assertEqual(settings.max_header_bytes, 0)
        self.assertTrue(settings.access_log)

    def test_environment_overrides(self) -> None:
        os.environ["DOU_ADDRESS"] = "127.0.0.1:9000"
        os.environ["DOU_READ_TIMEOUT"] = "10"
        os.environ["DOU_MAX_HEADER_BYTES"] = "1048576"
        os.environ["DOU_ACCESS_LOG"] = "false"

        settings = get_settings()

        self.assertEqual(settings.address, "127.0.0.1:9000")
        self.assertEqual(settings.read_timeout, 10.0)
        self.assertEqual(settings.max_header_bytes, 1 << 20)
        self.assertFalse(settings.access_log)

    def test_negative_tuning_values_are_rejected(self) -> None:
        for field in ("read_timeout", "write_timeout", "max_header_bytes"):
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    Settings(**{field: -1})


class MainExitStatusTests(_SettingsEnvCase):
    def _run_main(self, raised: Exception) -> tuple[int, list]:
        with patch.object(main_module, "configure_logging"), patch.object(main_module, "ServerRunner") as runner_cls:
            runner_cls.return_value.run.side_effect = raised
            with self.assertLogs("dou.main", level="INFO"):
                status = main_module.main(["--address", "127.0.0.1:0"])
        return status, runner_cls.return_value.run.call_args_list

    def test_interrupt_shutdown_exits_cleanly(self) -> None:
        status, calls = self._run_main(ServerClosedError("Server closed: signal:SIGINT"))

        self.assertEqual(status, 0)
        self.assertEqual(calls[0].args, ("127.0.0.1:0",))

    def test_fatal_errors_exit_with_failure(self) -> None:
        for raised in (ListenError(":80", "Permission denied"), EnvelopeEncodingError("bad envelope")):
            with self.subTest(raised=type(raised).__name__):
                status, _ = self._run_main(raised)
                self.assertEqual(status, 1)

    def test_address_defaults_to_settings(self) -> None:
        os.environ["DOU_ADDRESS"] = "127.0.0.1:9100"
        with patch.object(main_module, "configure_logging"), patch.object(main_module, "ServerRunner") as runner_cls:
            runner_cls.return_value.run.side_effect = ServerClosedError("closed")
            with self.assertLogs("dou.main", level="INFO"):
                main_module.main([])

        runner_cls.return_value.run.assert_called_once_with("127.0.0.1:9100")
