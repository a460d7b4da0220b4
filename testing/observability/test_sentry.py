"""Tests for Sentry setup."""

import unittest
from unittest.mock import MagicMock, patch

from remindee.observability.sentry import init_sentry


class TestInitSentry(unittest.TestCase):
    """Tests for init_sentry function."""

    @patch.dict("os.environ", {}, clear=True)
    @patch("remindee.observability.sentry.sentry_sdk.init")
    def test_noop_without_dsn(self, mock_init: MagicMock) -> None:
        """Test that Sentry stays off when SENTRY_DSN is unset."""
        init_sentry()

        mock_init.assert_not_called()

    @patch.dict(
        "os.environ",
        {"SENTRY_DSN": "https://key@sentry.example/1", "APP_ENV": "prod"},
        clear=True,
    )
    @patch("remindee.observability.sentry.sentry_sdk.init")
    def test_initialises_with_dsn(self, mock_init: MagicMock) -> None:
        """Test that Sentry is initialised with the configured environment."""
        init_sentry()

        mock_init.assert_called_once()
        kwargs = mock_init.call_args.kwargs
        self.assertEqual(kwargs["dsn"], "https://key@sentry.example/1")
        self.assertEqual(kwargs["environment"], "prod")
        self.assertEqual(kwargs["traces_sample_rate"], 0.0)
        self.assertFalse(kwargs["send_default_pii"])


if __name__ == "__main__":
    unittest.main()
