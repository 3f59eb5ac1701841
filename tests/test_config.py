from pathlib import Path

from jobify.config import AppConfig


def test_from_env_defaults(monkeypatch):
    for name in ("DATA_DIR", "RESUMES_DIR", "DATABASE_URL", "OPENAI_API_KEY", "LLM_MODEL", "SEARCH_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)

    config = AppConfig.from_env()

    assert config.data_dir == Path("data")
    assert config.resumes_dir == Path("resumes")
    assert not config.llm_enabled
    assert config.search_concurrency == 4
    assert config.resolved_database_url == f"sqlite:///{Path('data') / 'jobify.db'}"


def test_from_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("RESUMES_DIR", str(tmp_path / "cvs"))
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("SEARCH_CONCURRENCY", "2")

    config = AppConfig.from_env()
    config.ensure_directories()

    assert config.llm_enabled
    assert config.resolved_database_url == "sqlite://"
    assert config.search_concurrency == 2
    assert (tmp_path / "data").is_dir()
    assert (tmp_path / "cvs").is_dir()
