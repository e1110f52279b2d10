"""Unit tests for environment overrides in config.py."""

import logging

import pytest

from transcript_reconciler import config


class TestEnvOverrides:

    def test_int_override(self, monkeypatch):
        monkeypatch.setenv("TRANSCRIPT_TEST_INT", " 12 ")
        assert config._env_int("TRANSCRIPT_TEST_INT", 3) == 12

    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv("TRANSCRIPT_TEST_INT", raising=False)
        assert config._env_int("TRANSCRIPT_TEST_INT", 3) == 3

    def test_invalid_int_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("TRANSCRIPT_TEST_INT", "lots")
        with caplog.at_level(logging.WARNING, logger="transcript_reconciler.config"):
            assert config._env_int("TRANSCRIPT_TEST_INT", 3) == 3
        assert "TRANSCRIPT_TEST_INT" in caplog.text

    def test_float_override(self, monkeypatch):
        monkeypatch.setenv("TRANSCRIPT_TEST_FLOAT", "3.5")
        assert config._env_float("TRANSCRIPT_TEST_FLOAT", 2.5) == pytest.approx(3.5)

    def test_invalid_float_falls_back(self, monkeypatch):
        monkeypatch.setenv("TRANSCRIPT_TEST_FLOAT", "fast")
        assert config._env_float("TRANSCRIPT_TEST_FLOAT", 2.5) == pytest.approx(2.5)


class TestDefaults:

    def test_silence_tokens(self):
        assert {"sp", "sil", "<eps>"} <= config.MFA_SILENCE_TOKENS

    def test_log_level_is_upper_case(self):
        assert config.LOG_LEVEL == config.LOG_LEVEL.upper()
