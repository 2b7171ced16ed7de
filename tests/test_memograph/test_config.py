"""Unit tests for memograph.config."""

import logging
from pathlib import Path

import pytest

from memograph._logging import configure_logging
from memograph.config import (
    DEFAULT_EXTENSIONS,
    ConfigurationError,
    CorpusConfig,
    StaticConfigProvider,
    TomlConfigProvider,
    config_from_dict,
)


@pytest.fixture(autouse=True)
def _no_root_override(monkeypatch):
    monkeypatch.delenv("MEMOGRAPH_ROOT", raising=False)


def _write_config(workspace: Path, body: str) -> None:
    (workspace / ".memograph.toml").write_text(body, encoding="utf-8")


class TestConfigFromDict:
    def test_defaults(self, tmp_path: Path):
        config = config_from_dict({}, tmp_path)
        assert config == CorpusConfig(root_dir=tmp_path, file_extensions=DEFAULT_EXTENSIONS, link_scheme="memo")

    def test_values_are_used(self, tmp_path: Path):
        config = config_from_dict(
            {"corpus": {"base_dir": "notes", "file_extensions": [".txt"], "link_scheme": "note", "theme": "dark"}},
            tmp_path,
        )
        assert config.root_dir == tmp_path / "notes"
        assert config.file_extensions == (".txt",)
        assert config.link_scheme == "note"
        assert config.extra == {"theme": "dark"}

    @pytest.mark.parametrize(
        ("corpus", "field", "expected"),
        [
            ({"base_dir": 3}, "root_dir", None),
            ({"file_extensions": "md"}, "file_extensions", DEFAULT_EXTENSIONS),
            ({"file_extensions": []}, "file_extensions", DEFAULT_EXTENSIONS),
            ({"file_extensions": ["md"]}, "file_extensions", DEFAULT_EXTENSIONS),
            ({"link_scheme": "my scheme"}, "link_scheme", "memo"),
            ({"link_scheme": ""}, "link_scheme", "memo"),
        ],
    )
    def test_invalid_values_fall_back(self, tmp_path: Path, caplog, corpus, field, expected):
        with caplog.at_level(logging.WARNING, logger="memograph.config"):
            config = config_from_dict({"corpus": corpus}, tmp_path)
        assert getattr(config, field) == (tmp_path if expected is None else expected)
        assert "invalid" in caplog.text

    def test_root_is_absolute(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = config_from_dict({"corpus": {"base_dir": "notes"}}, Path("."))
        assert config.root_dir == tmp_path / "notes"
        assert config.root_dir.is_absolute()

    def test_env_overrides_root(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMOGRAPH_ROOT", str(tmp_path / "elsewhere"))
        config = config_from_dict({"corpus": {"base_dir": "notes"}}, tmp_path)
        assert config.root_dir == tmp_path / "elsewhere"


class TestProviders:
    async def test_static(self, tmp_path: Path):
        config = CorpusConfig(root_dir=tmp_path)
        assert await StaticConfigProvider(config).load() is config

    async def test_toml_file(self, tmp_path: Path):
        _write_config(
            tmp_path,
            '[corpus]\nbase_dir = "memos"\nfile_extensions = [".md"]\nlink_scheme = "note"\n',
        )
        config = await TomlConfigProvider(tmp_path).load()
        assert config.root_dir == tmp_path / "memos"
        assert config.file_extensions == (".md",)
        assert config.link_scheme == "note"

    async def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = await TomlConfigProvider(tmp_path).load()
        assert config == CorpusConfig(root_dir=tmp_path)

    async def test_reloads_on_every_call(self, tmp_path: Path):
        provider = TomlConfigProvider(tmp_path)
        assert (await provider.load()).link_scheme == "memo"
        _write_config(tmp_path, '[corpus]\nlink_scheme = "other"\n')
        assert (await provider.load()).link_scheme == "other"

    async def test_malformed_file_raises(self, tmp_path: Path):
        _write_config(tmp_path, "[corpus\nbase_dir = ")
        with pytest.raises(ConfigurationError):
            await TomlConfigProvider(tmp_path).load()


class TestConfigureLogging:
    def test_level_from_env(self, monkeypatch):
        logger = logging.getLogger("memograph")
        monkeypatch.setattr(logger, "handlers", [])
        monkeypatch.setattr(logger, "propagate", True)
        monkeypatch.setattr(logger, "level", logging.NOTSET)
        monkeypatch.setenv("MEMOGRAPH_LOG_LEVEL", "debug")

        configure_logging()
        configure_logging()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False
