# Tests for core data models
from pathlib import Path

import pytest

from mcpswitch.errors import ParseError
from mcpswitch.models import ErrorInfo, PlatformSettings, Registry, SaveResult, ServerConfig, Settings


def test_server_config_to_dict_omits_empty_env():
    server = ServerConfig(command="node", args=["x.js"])
    assert server.to_dict() == {"command": "node", "args": ["x.js"]}


def test_server_config_to_dict_keeps_env():
    server = ServerConfig(command="npx", args=[], env={"TOKEN": "t"})
    assert server.to_dict() == {"command": "npx", "args": [], "env": {"TOKEN": "t"}}


def test_server_config_is_immutable():
    server = ServerConfig(command="node")
    with pytest.raises(AttributeError):
        server.command = "python"  # type: ignore[misc]


def test_server_config_from_dict_rejects_non_string_env():
    with pytest.raises(ParseError, match="'env'"):
        ServerConfig.from_dict("fs", {"command": "node", "env": {"PORT": 8080}})


def test_settings_default_is_empty_platforms():
    settings = Settings.default()

    assert settings.platforms == []
    assert settings.output_dir is None
    assert settings.to_dict() == {"platforms": []}


def test_settings_find_platform():
    settings = Settings(platforms=[PlatformSettings(name="claude"), PlatformSettings(name="cursor")])

    assert settings.find_platform("cursor") == PlatformSettings(name="cursor")
    assert settings.find_platform("missing") is None


def test_registry_membership_and_order():
    registry = Registry(servers={"b": ServerConfig(command="b"), "a": ServerConfig(command="a")})

    assert "a" in registry
    assert "c" not in registry
    assert registry.ids() == ["b", "a"]
    assert len(registry) == 2


def test_registries_with_same_content_are_equal():
    first = Registry(servers={"fs": ServerConfig(command="node", args=["x.js"])})
    second = Registry(servers={"fs": ServerConfig(command="node", args=["x.js"])})
    assert first == second


def test_save_result_to_dict():
    ok = SaveResult(success=True, path=Path("/out/claude/config.json"))
    failed = SaveResult(success=False, error="Permission denied")

    assert ok.to_dict() == {"success": True, "path": "/out/claude/config.json"}
    assert failed.to_dict() == {"success": False, "error": "Permission denied"}


def test_error_info_to_dict():
    assert ErrorInfo("boom").to_dict() == {"message": "boom"}
    assert ErrorInfo("boom", Path("/x.json")).to_dict() == {"message": "boom", "path": "/x.json"}
