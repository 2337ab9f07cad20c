"""
Tests for config loading, atomic saving, and tool settings.
"""

import json

import pytest

from pkgsync.core.config.loader import (
    find_config_file,
    load_config,
    load_config_document,
    project_root,
    resolve_config_path,
    save_config_document,
)
from pkgsync.core.config.settings import Settings, load_settings
from pkgsync.core.errors import (
    CircularDependency,
    ConfigError,
    ConfigurationNotFound,
    InvalidVersionFormat,
    UndefinedDependency,
)


# ═══════════════════════════════════════════════════════════════════
#  Locating the config
# ═══════════════════════════════════════════════════════════════════


class TestFindConfigFile:
    def test_found_in_start_dir(self, tmp_path, write_config):
        path = write_config([])
        assert find_config_file(tmp_path) == path.resolve()

    def test_found_from_subdirectory(self, tmp_path, write_config):
        path = write_config([])
        nested = tmp_path / "force-app" / "main"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == path.resolve()

    def test_not_found(self, tmp_path):
        assert find_config_file(tmp_path, relative="nope/missing-pkgsync.json") is None

    def test_resolve_explicit_path_wins(self, tmp_path):
        explicit = tmp_path / "other.json"
        assert resolve_config_path(explicit) == explicit

    def test_project_root_of_standard_config(self, tmp_path, write_config):
        assert project_root(write_config([])) == tmp_path.resolve()

    def test_project_root_of_other_config(self, tmp_path):
        assert project_root(tmp_path / "pkgs.json") == tmp_path.resolve()

    def test_resolve_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigurationNotFound):
            resolve_config_path(relative="nope/missing-pkgsync.json")


# ═══════════════════════════════════════════════════════════════════
#  Loading
# ═══════════════════════════════════════════════════════════════════


class TestLoadConfig:
    def test_loads_records(self, write_config, entry):
        path = write_config([entry("a", "1.2.3.4", password="pw", security_type="AllUsers")])
        records = load_config(path)
        assert len(records) == 1
        assert records[0].namespace == "a"
        assert records[0].version == "1.2.3.4"
        assert records[0].install_key == "pw"
        assert records[0].security_type.value == "AllUsers"

    def test_records_in_dependency_order(self, write_config, entry):
        path = write_config([
            entry("app", depends=["lib"]),
            entry("lib", depends=["core"]),
            entry("core"),
        ])
        assert [r.namespace for r in load_config(path)] == ["core", "lib", "app"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationNotFound):
            load_config(tmp_path / "config" / "packages.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "packages.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)

    def test_root_not_object(self, tmp_path):
        path = tmp_path / "packages.json"
        path.write_text("[]")
        with pytest.raises(ConfigError, match="JSON object"):
            load_config(path)

    def test_packages_not_array(self, tmp_path):
        path = tmp_path / "packages.json"
        path.write_text('{"packages": {}}')
        with pytest.raises(ConfigError, match="array"):
            load_config(path)

    def test_missing_packages_key_is_empty(self, tmp_path):
        path = tmp_path / "packages.json"
        path.write_text("{}")
        assert load_config(path) == []

    @pytest.mark.parametrize("namespace", [["x"], "", None, 7])
    def test_malformed_namespace(self, write_config, namespace):
        path = write_config([{"namespace": namespace, "version": "1.0.0.0"}])
        with pytest.raises(ConfigError, match="Invalid package configuration"):
            load_config(path)

    def test_missing_namespace(self, write_config):
        path = write_config([{"version": "1.0.0.0"}])
        with pytest.raises(ConfigError, match="Invalid package configuration"):
            load_config(path)

    def test_bad_version(self, write_config, entry):
        path = write_config([entry("a", "1.0.0")])
        with pytest.raises(InvalidVersionFormat):
            load_config(path)

    def test_undefined_dependency(self, write_config, entry):
        path = write_config([entry("a", depends=["c"]), entry("b")])
        with pytest.raises(UndefinedDependency):
            load_config(path)

    def test_circular_dependency(self, write_config, entry):
        path = write_config([entry("a", depends=["b"]), entry("b", depends=["a"])])
        with pytest.raises(CircularDependency):
            load_config(path)

    def test_duplicate_namespace(self, write_config, entry):
        path = write_config([entry("a"), entry("a", "2.0.0.0")])
        with pytest.raises(ConfigError, match="Duplicate"):
            load_config(path)

    def test_document_missing_ok(self, tmp_path):
        assert load_config_document(tmp_path / "absent.json", missing_ok=True) == {"packages": []}


# ═══════════════════════════════════════════════════════════════════
#  Saving
# ═══════════════════════════════════════════════════════════════════


class TestSaveConfigDocument:
    def test_writes_pretty_json(self, tmp_path):
        path = tmp_path / "config" / "packages.json"
        save_config_document({"packages": [{"namespace": "a"}]}, path)

        text = path.read_text()
        assert text.endswith("\n")
        assert '  "packages"' in text
        assert json.loads(text) == {"packages": [{"namespace": "a"}]}

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "packages.json"
        save_config_document({"packages": []}, path)
        save_config_document({"packages": [{"namespace": "b"}]}, path)
        assert [p.name for p in tmp_path.iterdir()] == ["packages.json"]

    def test_preserves_unknown_keys(self, tmp_path, write_config):
        path = write_config([{"namespace": "a", "version": "1.0.0.0", "note": "x"}])
        doc = load_config_document(path)
        doc["comment"] = "top"
        save_config_document(doc, path)

        data = json.loads(path.read_text())
        assert data["comment"] == "top"
        assert data["packages"][0]["note"] == "x"

    def test_unwritable_target(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(ConfigError):
            save_config_document({"packages": []}, blocker / "packages.json")


# ═══════════════════════════════════════════════════════════════════
#  Settings
# ═══════════════════════════════════════════════════════════════════


class TestSettings:
    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("PKGSYNC_SF_BIN", raising=False)
        settings = load_settings()
        assert settings == Settings()
        assert settings.retry_rounds == 3
        assert settings.retry_delay_seconds == 5.0
        assert settings.install_wait_minutes == 10

    def test_from_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PKGSYNC_SF_BIN", raising=False)
        path = tmp_path / "pkgsync.yml"
        path.write_text("sf_bin: /opt/sf\nretry_rounds: 5\nretry_delay_seconds: 0\n")
        settings = load_settings(path)
        assert settings.sf_bin == "/opt/sf"
        assert settings.retry_rounds == 5
        assert settings.retry_delay_seconds == 0

    def test_found_upward(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PKGSYNC_SF_BIN", raising=False)
        (tmp_path / "pkgsync.yml").write_text("install_wait_minutes: 30\n")
        nested = tmp_path / "sub"
        nested.mkdir()
        monkeypatch.chdir(nested)
        assert load_settings().install_wait_minutes == 30

    def test_env_overrides_binary(self, tmp_path, monkeypatch):
        path = tmp_path / "pkgsync.yml"
        path.write_text("sf_bin: /opt/sf\n")
        monkeypatch.setenv("PKGSYNC_SF_BIN", "/usr/local/bin/sf")
        assert load_settings(path).sf_bin == "/usr/local/bin/sf"

    def test_empty_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PKGSYNC_SF_BIN", raising=False)
        path = tmp_path / "pkgsync.yml"
        path.write_text("")
        assert load_settings(path) == Settings()

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "absent.yml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "pkgsync.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pkgsync.yml"
        path.write_text("retry_rounds: [unclosed\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "pkgsync.yml"
        path.write_text("retry_rounds: 0\n")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings(path)
