# tests/shell/test_shell_config.py
import json

import pytest
from pydantic import ValidationError

from pageguard.policy import GuardPolicy


def test_config_manager_load(config_env):
    """The manager loads the mock settings.json from the package root."""
    config = config_env.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["policy"]["acceptance_threshold"] == 80


def test_config_manager_get_nested(config_env):
    assert config_env.get_nested("check.fallback_title") == "Test Site"
    assert config_env.get_nested("non.existent.key", "default") == "default"
    assert config_env.get_nested("debug.level.deeper", "default") == "default"


def test_config_manager_set_nested_casts_to_existing_type(config_env):
    config_env.set_nested("policy.acceptance_threshold", "75")
    assert config_env.get_nested("policy.acceptance_threshold") == 75

    config_env.set_nested("policy.allow_inline_styles", "false")
    assert config_env.get_nested("policy.allow_inline_styles") is False

    config_env.set_nested("policy.script_allowlist", '["https://cdn.example.com"]')
    assert config_env.get_nested("policy.script_allowlist") == ["https://cdn.example.com"]

    # New keys are created as plain strings
    config_env.set_nested("new_feature.enabled", "yes")
    assert config_env.get_nested("new_feature.enabled") == "yes"


def test_set_nested_refuses_to_descend_into_a_value(config_env):
    assert not config_env.set_nested("debug.level.sub", "x")
    assert config_env.get_nested("debug.level") == "WARNING"


def test_config_manager_reset(config_env):
    config_env.set_nested("policy.acceptance_threshold", "10")
    config_env.reset()
    assert config_env.get_nested("policy.acceptance_threshold") == 80


def test_get_policy(config_env):
    policy = config_env.get_policy()
    assert isinstance(policy, GuardPolicy)
    assert policy.acceptance_threshold == 80
    assert policy.script_allowlist == ("https://unpkg.com",)
    # Unset values keep their defaults
    assert policy.min_visible_text == GuardPolicy().min_visible_text


def test_invalid_policy_raises(config_env):
    config_env.set_nested("policy.acceptance_threshold", "250")
    with pytest.raises(ValidationError):
        config_env.get_policy()


def test_user_settings_override_package_default(config_env, tmp_path):
    user_dir = tmp_path / "home" / ".pageguard"
    user_dir.mkdir(parents=True)
    (user_dir / "settings.json").write_text(json.dumps({"policy": {"acceptance_threshold": 60}}))

    config_env.reset()
    assert config_env.settings_path == user_dir / "settings.json"
    assert config_env.get_policy().acceptance_threshold == 60


def test_explicit_settings_path(config_env, tmp_path):
    custom = tmp_path / "custom.json"
    custom.write_text(json.dumps({"policy": {"default_lang": "nl"}}))

    config_env.load(custom)
    assert config_env.get_policy().default_lang == "nl"

    config_env.load(None)
    assert config_env.get_policy().default_lang == "en"


def test_missing_or_broken_settings_give_empty_config(config_env, tmp_path):
    config_env.load(tmp_path / "does-not-exist.json")
    assert config_env.get_all() == {}
    assert config_env.get_policy() == GuardPolicy()

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    config_env.load(broken)
    assert config_env.get_all() == {}


def test_packaged_settings_build_a_valid_policy():
    from pageguard_shell.core.utils.path_utils import PathUtils

    settings = json.loads(PathUtils.get_default_settings_file().read_text(encoding="utf-8"))
    assert GuardPolicy(**settings["policy"]) == GuardPolicy()
