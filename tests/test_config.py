"""
Tests for loading and validating the mirror configuration file.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ghmirror.config.loader import ConfigProvider, load_config, parse_config
from ghmirror.config.models import DEFAULT_CLONE_TIMEOUT, DEFAULT_FETCH_TIMEOUT
from ghmirror.errors import ConfigurationError


def _write_json(path: Path, data) -> Path:
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def config_file(tmp_path, base_dir):
    return _write_json(tmp_path / "mirrors.json", {
        "baseMirrorDir": str(base_dir),
        "mirrors": [
            {"name": "widgets", "url": "git@github.com:acme/widgets.git"},
            {"name": "tools", "url": "git@github.com:acme/tools.git", "wrapper": "with-key"},
        ],
        "ipAddressRestrictions": ["192.30.252.0/22"],
    })


# ── Loading ──────────────────────────────────────────────────────────


class TestLoadConfig:

    def test_json_file(self, config_file, base_dir):
        config = load_config(config_file)

        assert config.base_path == base_dir
        assert [m.name for m in config.mirrors] == ["widgets", "tools"]
        assert config.mirrors[1].wrapper == "with-key"
        assert config.ip_address_restrictions == ["192.30.252.0/22"]

    def test_yaml_file(self, tmp_path, base_dir):
        path = tmp_path / "mirrors.yaml"
        path.write_text(
            f"baseMirrorDir: {base_dir}\n"
            "mirrors:\n"
            "  - name: widgets\n"
            "    url: git@github.com:acme/widgets.git\n"
            "fetchTimeout: 15\n"
        )

        config = load_config(str(path))

        assert config.get_mirror("widgets").url == "git@github.com:acme/widgets.git"
        assert config.fetch_timeout == 15

    def test_defaults(self, tmp_path):
        config = load_config(_write_json(tmp_path / "c.json", {"baseMirrorDir": "/srv/git"}))

        assert config.mirrors == []
        assert config.ip_address_restrictions == []
        assert config.clone_timeout == DEFAULT_CLONE_TIMEOUT
        assert config.fetch_timeout == DEFAULT_FETCH_TIMEOUT

    def test_null_restrictions_mean_none(self, tmp_path):
        config = load_config(_write_json(tmp_path / "c.json", {
            "baseMirrorDir": "/srv/git",
            "ipAddressRestrictions": None,
        }))
        assert config.ip_address_restrictions == []

    def test_mirror_dir(self, config_file, base_dir):
        config = load_config(config_file)
        assert config.mirror_dir(config.mirrors[0]) == base_dir / "widgets.git"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc:
            load_config(tmp_path / "absent.json")
        assert "not found" in str(exc.value)
        assert "absent.json" in str(exc.value)

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"baseMirrorDir": "/srv/git", "mirrors": [')

        with pytest.raises(ConfigurationError, match="cannot be parsed"):
            load_config(path)

    def test_document_must_be_mapping(self, tmp_path):
        path = _write_json(tmp_path / "list.json", [1, 2, 3])

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_config(path)


# ── Validation ───────────────────────────────────────────────────────


class TestValidation:

    def test_missing_base_mirror_dir(self):
        with pytest.raises(ConfigurationError) as exc:
            parse_config({"mirrors": []})
        assert "baseMirrorDir" in str(exc.value)
        assert exc.value.details["errors"]

    def test_duplicate_mirror_names(self):
        with pytest.raises(ConfigurationError, match="duplicate mirror name"):
            parse_config({
                "baseMirrorDir": "/srv/git",
                "mirrors": [
                    {"name": "widgets", "url": "a"},
                    {"name": "widgets", "url": "b"},
                ],
            })

    def test_invalid_cidr(self):
        with pytest.raises(ConfigurationError, match="invalid CIDR"):
            parse_config({"baseMirrorDir": "/srv/git", "ipAddressRestrictions": ["not-a-net"]})

    @pytest.mark.parametrize("name", ["a/b", ".", "..", ""])
    def test_invalid_mirror_name(self, name):
        with pytest.raises(ConfigurationError):
            parse_config({"baseMirrorDir": "/srv/git", "mirrors": [{"name": name, "url": "u"}]})

    def test_mirror_without_url(self):
        with pytest.raises(ConfigurationError):
            parse_config({"baseMirrorDir": "/srv/git", "mirrors": [{"name": "widgets"}]})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            parse_config({"baseMirrorDir": "/srv/git", "cloneTimeout": 0})

    def test_snake_case_keys_accepted(self):
        config = parse_config({"base_mirror_dir": "/srv/git", "fetch_timeout": 5})
        assert config.fetch_timeout == 5


# ── Provider ─────────────────────────────────────────────────────────


class TestConfigProvider:

    def test_rereads_file_on_every_call(self, config_file):
        provider = ConfigProvider(config_file)
        assert len(provider().mirrors) == 2

        data = json.loads(config_file.read_text())
        data["mirrors"].append({"name": "gadgets", "url": "https://github.com/acme/gadgets.git"})
        _write_json(config_file, data)

        assert [m.name for m in provider().mirrors] == ["widgets", "tools", "gadgets"]

    def test_error_after_file_removed(self, config_file):
        provider = ConfigProvider(config_file)
        provider()
        config_file.unlink()

        with pytest.raises(ConfigurationError):
            provider()
