# tests/test_settings.py

from pubgraph.config.settings import Settings, get_settings


def test_settings_paths_exist():
    settings = get_settings()

    assert settings.DATA_DIR.exists()
    assert settings.graph_dir.exists()
    assert settings.default_graph_path.parent == settings.graph_dir
    assert settings.default_graph_path.suffix == ".gpickle"


def test_defaults():
    settings = Settings()

    assert settings.IMPACT_FACTOR_WINDOW_YEARS == 2
    assert settings.CACHE_LOCK_STRIPES == 64
    assert settings.cache_eager_init is False
    assert settings.QUERY_MAX_WORKERS >= 1


def test_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("PUBGRAPH_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PUBGRAPH_IMPACT_FACTOR_WINDOW_YEARS", "5")
    monkeypatch.setenv("PUBGRAPH_CACHE_EAGER_INIT", "true")

    settings = Settings()

    assert settings.DATA_DIR == tmp_path
    assert settings.graph_dir == tmp_path / "graph"
    assert settings.IMPACT_FACTOR_WINDOW_YEARS == 5
    assert settings.cache_eager_init is True
