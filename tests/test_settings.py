import unittest
from unittest import mock

from confmap.settings import DEFAULT_HTTP_TIMEOUT, ProviderSettings


class ProviderSettingsTests(unittest.TestCase):
    def test_defaults_from_empty_environment(self):
        settings = ProviderSettings.from_env({})
        self.assertIsNone(settings.ca_file)
        self.assertTrue(settings.require_ca_file)
        self.assertEqual(settings.http_timeout, DEFAULT_HTTP_TIMEOUT)
        self.assertIsNone(settings.aws_profile)

    def test_reads_environment(self):
        env = {
            "SSL_CERT_FILE": "/etc/confmap/RootCA.crt",
            "CONFMAP_REQUIRE_CA_FILE": "false",
            "CONFMAP_HTTP_TIMEOUT": "2.5",
            "CONFMAP_S3_CONNECT_TIMEOUT": "1",
            "CONFMAP_S3_READ_TIMEOUT": "4",
            "AWS_PROFILE": "configs",
        }
        with mock.patch.dict("os.environ", env, clear=True):
            settings = ProviderSettings.from_env()
        self.assertEqual(settings.ca_file, "/etc/confmap/RootCA.crt")
        self.assertFalse(settings.require_ca_file)
        self.assertEqual(settings.http_timeout, 2.5)
        self.assertEqual(settings.s3_connect_timeout, 1.0)
        self.assertEqual(settings.s3_read_timeout, 4.0)
        self.assertEqual(settings.aws_profile, "configs")

    def test_invalid_values_name_the_variable(self):
        for env in (
            {"CONFMAP_HTTP_TIMEOUT": "soon"},
            {"CONFMAP_HTTP_TIMEOUT": "-1"},
            {"CONFMAP_REQUIRE_CA_FILE": "maybe"},
        ):
            with self.subTest(env=env):
                with self.assertRaises(ValueError) as ctx:
                    ProviderSettings.from_env(env)
                self.assertIn(next(iter(env)), str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
