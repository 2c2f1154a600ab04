from __future__ import annotations

import json

import pytest

from absence_notifier.config import load_settings

ENV_VARS = [
    "SMS_API_URL",
    "SMS_API_KEY",
    "SMS_TEMPLATE_TEXT",
    "SMS_TEMPLATE_ID",
    "SMS_DLT_CONFIG",
    "CRON_SECRET",
    "OPERATOR_PHONES",
    "STORE_BACKEND",
    "DATABASE_PATH",
    "FIREBASE_CREDENTIALS",
    "STUDENT_ROSTER_PATH",
    "ATTENDANCE_SESSIONS_PATH",
    "SMS_TIMEOUT_SECONDS",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def _missing_env_file(tmp_path):
    return str(tmp_path / "missing.env")


def test_loads_individual_variables(env, tmp_path):
    env.setenv("SMS_API_URL", "https://sms.example.test/")
    env.setenv("SMS_API_KEY", "key")
    env.setenv("SMS_TEMPLATE_TEXT", "text")
    env.setenv("SMS_TEMPLATE_ID", "42")
    env.setenv("OPERATOR_PHONES", "9111111111, 9222222222,")
    env.setenv("CRON_SECRET", "secret")

    settings = load_settings(_missing_env_file(tmp_path))

    assert settings.sms_api_url == "https://sms.example.test"
    assert settings.sms_template_id == 42
    assert settings.operator_phones == ("9111111111", "9222222222")
    assert settings.cron_secret == "secret"
    assert settings.store_backend == "sqlite"


def test_reads_dlt_config_blob(env, tmp_path):
    env.setenv(
        "SMS_DLT_CONFIG",
        json.dumps({"API_URL": "https://gw.test", "API_KEY": "k", "TEMPLATE_TEXT": "t", "TEMPLATE_ID": 7}),
    )
    env.setenv("SMS_API_KEY", "override")

    settings = load_settings(_missing_env_file(tmp_path))

    assert settings.sms_api_url == "https://gw.test"
    assert settings.sms_api_key == "override"
    assert settings.sms_template_id == 7
    assert settings.cron_secret is None
    assert settings.operator_phones == ()


def test_missing_gateway_key_is_fatal(env, tmp_path):
    env.setenv("SMS_API_URL", "https://gw.test")
    env.setenv("SMS_TEMPLATE_TEXT", "t")
    env.setenv("SMS_TEMPLATE_ID", "1")

    with pytest.raises(RuntimeError, match="SMS_API_KEY"):
        load_settings(_missing_env_file(tmp_path))


def test_template_id_must_be_integer(env, tmp_path):
    env.setenv("SMS_DLT_CONFIG", json.dumps({"API_URL": "u", "API_KEY": "k", "TEMPLATE_TEXT": "t", "TEMPLATE_ID": "abc"}))

    with pytest.raises(RuntimeError, match="integer"):
        load_settings(_missing_env_file(tmp_path))


def test_firestore_backend_needs_credentials(env, tmp_path):
    env.setenv("SMS_DLT_CONFIG", json.dumps({"API_URL": "u", "API_KEY": "k", "TEMPLATE_TEXT": "t", "TEMPLATE_ID": 1}))
    env.setenv("STORE_BACKEND", "firestore")

    with pytest.raises(RuntimeError, match="FIREBASE_CREDENTIALS"):
        load_settings(_missing_env_file(tmp_path))


def test_unknown_backend_rejected(env, tmp_path):
    env.setenv("SMS_DLT_CONFIG", json.dumps({"API_URL": "u", "API_KEY": "k", "TEMPLATE_TEXT": "t", "TEMPLATE_ID": 1}))
    env.setenv("STORE_BACKEND", "mongo")

    with pytest.raises(RuntimeError, match="STORE_BACKEND"):
        load_settings(_missing_env_file(tmp_path))
