from pathlib import Path

import pytest

from fsxmodels.config import (
    Settings,
    _deep_merge,
    load_config,
    resolve_settings,
    settings_from_mapping,
)
from fsxmodels.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"mount": {"point": "/fsx", "max_retries": 10}}
        override = {"mount": {"max_retries": 3}}
        assert _deep_merge(base, override) == {"mount": {"point": "/fsx", "max_retries": 3}}

    def test_override_adds_new_sections(self):
        result = _deep_merge({"mount": {"share": "fsx"}}, {"models": {"owner": "ubuntu"}})
        assert result == {"mount": {"share": "fsx"}, "models": {"owner": "ubuntu"}}

    def test_base_not_mutated(self):
        base = {"mount": {"share": "fsx"}}
        _deep_merge(base, {"mount": {"share": "other"}})
        assert base == {"mount": {"share": "fsx"}}


class TestLoadConfig:
    def test_project_only(self, tmp_path: Path):
        (tmp_path / "fsxmodels.toml").write_text("[mount]\nmax_retries = 4\n")
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result["mount"]["max_retries"] == 4

    def test_global_only(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text('[models]\nowner = "ec2-user"\n')
        result = load_config(project_dir=tmp_path / "noproject", global_path=global_toml)
        assert result["models"]["owner"] == "ec2-user"

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text("[mount]\nmax_retries = 2\nretry_delay = 5\n")
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "fsxmodels.toml").write_text("[mount]\nmax_retries = 8\n")
        result = load_config(project_dir=project_dir, global_path=global_toml)
        assert result["mount"] == {"max_retries": 8, "retry_delay": 5}

    def test_no_files(self, tmp_path: Path):
        assert load_config(project_dir=tmp_path, global_path=tmp_path / "none.toml") == {}

    def test_explicit_path_replaces_project_file(self, tmp_path: Path):
        (tmp_path / "fsxmodels.toml").write_text("[mount]\nmax_retries = 1\n")
        explicit = tmp_path / "custom.toml"
        explicit.write_text("[mount]\nmax_retries = 7\n")
        result = load_config(path=explicit, project_dir=tmp_path, global_path=tmp_path / "none.toml")
        assert result["mount"]["max_retries"] == 7

    def test_explicit_path_missing(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(path=tmp_path / "missing.toml", global_path=tmp_path / "none.toml")

    def test_invalid_toml(self, tmp_path: Path):
        (tmp_path / "fsxmodels.toml").write_text("[mount\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=tmp_path / "none.toml")


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.mount_point == Path("/fsx")
        assert s.models_root == Path("/fsx/models")
        assert s.max_retries == 10
        assert s.retry_delay == 30.0
        assert s.mode == 0o755
        assert s.token_env == "HF_TOKEN"
        assert s.concurrency == 1
        assert s.strict is False

    def test_models_dir_overrides_root(self):
        assert Settings(models_dir=Path("/data/models")).models_root == Path("/data/models")

    def test_models_root_follows_mount_point(self):
        assert Settings(mount_point=Path("/mnt/lustre")).models_root == Path("/mnt/lustre/models")

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_retries": -1}, {"retry_delay": -0.5}, {"concurrency": 0}, {"fetch_retries": -2}, {"mode": 0o17777}],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            Settings(**kwargs)

    def test_with_overrides_skips_none(self):
        s = Settings().with_overrides(max_retries=3, owner=None, strict=True)
        assert s.max_retries == 3
        assert s.owner is None
        assert s.strict is True


class TestSettingsFromMapping:
    def test_sections_mapped_to_fields(self):
        s = settings_from_mapping({
            "mount": {"point": "/mnt/fsx", "share": "abcd1234", "max_retries": 2, "persist": False},
            "models": {"owner": "ubuntu", "concurrency": 2, "smoke_test": False},
            "logging": {"level": "DEBUG"},
            "run": {"strict": True, "sudo": False},
        })
        assert s.mount_point == Path("/mnt/fsx")
        assert s.share_name == "abcd1234"
        assert s.max_retries == 2
        assert s.persist is False
        assert s.owner == "ubuntu"
        assert s.concurrency == 2
        assert s.smoke_test is False
        assert s.log_level == "DEBUG"
        assert s.strict is True
        assert s.sudo is False

    def test_octal_mode_string(self):
        assert settings_from_mapping({"models": {"mode": "750"}}).mode == 0o750

    def test_bad_mode_string(self):
        with pytest.raises(ConfigurationError, match="octal"):
            settings_from_mapping({"models": {"mode": "rwx"}})

    def test_path_expands_user(self):
        s = settings_from_mapping({"run": {"guide_dir": "~/guides"}})
        assert s.guide_dir == Path.home() / "guides"

    def test_unknown_section(self):
        with pytest.raises(ConfigurationError, match="Unknown config section 'pools'"):
            settings_from_mapping({"pools": {}})

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown key 'retries'"):
            settings_from_mapping({"mount": {"retries": 3}})

    def test_section_must_be_table(self):
        with pytest.raises(ConfigurationError, match="must be a table"):
            settings_from_mapping({"mount": 3})

    def test_invalid_value_surfaces_as_configuration_error(self):
        with pytest.raises(ConfigurationError):
            settings_from_mapping({"mount": {"max_retries": -1}})


class TestResolveSettings:
    def test_from_files(self, tmp_path: Path):
        (tmp_path / "fsxmodels.toml").write_text('[models]\ndir = "/data/models"\n')
        s = resolve_settings(project_dir=tmp_path, global_path=tmp_path / "none.toml")
        assert s.models_root == Path("/data/models")

    def test_defaults_without_files(self, tmp_path: Path):
        assert resolve_settings(project_dir=tmp_path, global_path=tmp_path / "none.toml") == Settings()
