import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from pydantic import ValidationError

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from iotail.config import load_config
from iotail.schemas import TailConfig


class TestTailConfig(unittest.TestCase):
    def test_defaults(self):
        cfg = TailConfig()
        self.assertEqual(cfg.max_interval, 10)
        self.assertIsNone(cfg.interval)
        self.assertEqual(cfg.start_interval, 10)
        self.assertTrue(cfg.reopen_deleted)
        self.assertTrue(cfg.reopen_suspicious)
        self.assertEqual(cfg.suspicious_interval, 60)
        self.assertFalse(cfg.break_if_eof)
        self.assertFalse(cfg.return_if_eof)
        self.assertIsNone(cfg.default_bufsize)

    def test_rejects_non_positive_values(self):
        for bad in ({"max_interval": 0}, {"interval": -1}, {"suspicious_interval": -5}, {"default_bufsize": 0}):
            with self.assertRaises(ValidationError, msg=str(bad)):
                TailConfig(**bad)


class TestLoadConfig(unittest.TestCase):
    def test_defaults_come_from_model(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        self.assertEqual(cfg, TailConfig())

    def test_file_then_env_then_keywords(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "tail.json"
            path.write_text(json.dumps({"max_interval": 2, "suspicious_interval": 30, "return_if_eof": True}))
            env = {"IOTAIL_SUSPICIOUS_INTERVAL": "45", "IOTAIL_DEFAULT_BUFSIZE": "512"}
            with mock.patch.dict(os.environ, env, clear=True):
                cfg = load_config(path, max_interval=None, reopen_deleted=False)
        self.assertEqual(cfg.max_interval, 2)
        self.assertEqual(cfg.suspicious_interval, 45)
        self.assertEqual(cfg.default_bufsize, 512)
        self.assertTrue(cfg.return_if_eof)
        self.assertFalse(cfg.reopen_deleted)

    def test_user_file_only_overrides_what_it_names(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "tail.json"
            path.write_text(json.dumps({"interval": 0.5}))
            with mock.patch.dict(os.environ, {}, clear=True):
                cfg = load_config(path)
        self.assertEqual(cfg.interval, 0.5)
        self.assertEqual(cfg.model_dump(exclude={"interval"}), TailConfig().model_dump(exclude={"interval"}))

    def test_unknown_setting_in_file_is_rejected(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "tail.json"
            path.write_text(json.dumps({"max_intervall": 3}))
            with self.assertRaises(ValueError):
                load_config(path)

    def test_invalid_env_value_is_rejected(self):
        with mock.patch.dict(os.environ, {"IOTAIL_MAX_INTERVAL": "-1"}, clear=True):
            with self.assertRaises(ValidationError):
                load_config()

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/iotail.json")


if __name__ == "__main__":
    unittest.main()
