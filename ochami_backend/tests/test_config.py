import logging
import os
import unittest
from unittest import mock

from pydantic import ValidationError

from ochami_backend.authentication import get_api_token
from ochami_backend.config import LOG_FORMAT, EndpointSettings, configure_logging
from ochami_backend.errors import InvalidArgumentError


class EndpointSettingsTests(unittest.TestCase):
    def test_trailing_slash_and_service_paths(self):
        settings = EndpointSettings(base_url="https://ochami.test/", smd_path="/hsm/v2/")
        self.assertEqual(settings.base_url, "https://ochami.test")
        self.assertEqual(settings.service_path("smd"), "hsm/v2")
        self.assertEqual(settings.service_path("pcs"), "power-control/v1")

    def test_invalid_values_are_rejected(self):
        for overrides in [
            {"base_url": "ochami.test"},
            {"max_concurrent": 0},
            {"batch_size": 0},
            {"request_timeout_seconds": 0},
        ]:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    EndpointSettings(**overrides)

    def test_tls_and_proxy_options(self):
        settings = EndpointSettings(root_cert_path="/etc/ochami/ca.pem", socks5_proxy="socks5h://127.0.0.1:1080")
        self.assertEqual(settings.verify, "/etc/ochami/ca.pem")
        self.assertEqual(
            settings.proxies,
            {"http": "socks5h://127.0.0.1:1080", "https": "socks5h://127.0.0.1:1080"},
        )
        self.assertEqual(EndpointSettings(verify_ssl=False, socks5_proxy=None).verify, False)
        self.assertEqual(EndpointSettings(socks5_proxy=None).proxies, {})

    def test_reads_environment(self):
        env = {"OCHAMI_BASE_URL": "http://smd.local:27779", "ACCESS_TOKEN": "abc", "OCHAMI_BATCH_SIZE": "25"}
        with mock.patch.dict(os.environ, env):
            settings = EndpointSettings()
        self.assertEqual(settings.base_url, "http://smd.local:27779")
        self.assertEqual(settings.access_token, "abc")
        self.assertEqual(settings.batch_size, 25)
        self.assertNotIn("abc", repr(settings))

    def test_timeout_tuple(self):
        settings = EndpointSettings(connect_timeout_seconds=2, request_timeout_seconds=9)
        self.assertEqual(settings.timeout, (2.0, 9.0))

    def test_configure_logging(self):
        with mock.patch("logging.basicConfig") as basic_config:
            configure_logging("debug")
        basic_config.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT)


class ApiTokenTests(unittest.TestCase):
    def test_reads_access_token(self):
        with mock.patch.dict(os.environ, {"ACCESS_TOKEN": "abc"}):
            self.assertEqual(get_api_token(), "abc")

    def test_missing_or_blank_token(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(InvalidArgumentError):
                get_api_token()
        with mock.patch.dict(os.environ, {"ACCESS_TOKEN": " "}):
            with self.assertRaises(InvalidArgumentError):
                get_api_token()


if __name__ == "__main__":
    unittest.main()
