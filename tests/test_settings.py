"""Tests for Settings."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from gcg.exceptions import ConfigurationError
from gcg.settings import Settings


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_defaults(self):
        """Test defaults with no environment."""
        with patch.dict(os.environ, {}, clear=True):
            st = Settings.load()

        assert st.batch_size == 100
        assert st.top_count == 10
        assert st.graph_backend == "json"
        assert st.graph_path is None
        assert st.excluded_extensions == [".csproj", ".sln"]
        assert st.excluded_file_names == ["Program.cs", "package.json", "tsconfig.json"]
        assert st.exclude_root_files is True

    def test_from_env(self):
        """Test environment variables override defaults."""
        env = {
            "GCG_BATCH_SIZE": "25",
            "GCG_GRAPH_BACKEND": "SQLite",
            "GCG_EXCLUDED_EXTENSIONS": ".md, .txt",
            "GCG_EXCLUDE_ROOT_FILES": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            st = Settings.load()

        assert st.batch_size == 25
        assert st.graph_backend == "sqlite"
        assert st.excluded_extensions == [".md", ".txt"]
        assert st.exclude_root_files is False

    def test_overrides_skip_none(self):
        """Test None overrides fall back to the environment."""
        with patch.dict(os.environ, {"GCG_BATCH_SIZE": "7"}, clear=True):
            st = Settings.load(batch_size=None, top_count=3)

        assert st.batch_size == 7
        assert st.top_count == 3

    @pytest.mark.parametrize(
        "overrides", [{"batch_size": 0}, {"graph_backend": "neo4j"}, {"log_level": "verbose"}]
    )
    def test_invalid_values(self, overrides):
        """Test bad values surface as ConfigurationError."""
        with pytest.raises(ConfigurationError):
            Settings.load(**overrides)

    def test_unparseable_env(self):
        """Test a non-numeric batch size is a configuration error."""
        with patch.dict(os.environ, {"GCG_BATCH_SIZE": "lots"}, clear=True):
            with pytest.raises(ConfigurationError):
                Settings.load()

    def test_graph_file_derived_from_repo(self, tmp_path):
        """Test the graph file lives in the repository by default."""
        with patch.dict(os.environ, {}, clear=True):
            json_st = Settings.load()
            sqlite_st = Settings.load(graph_backend="sqlite")

        assert json_st.graph_file_for(tmp_path) == tmp_path.resolve() / "correlation-graph.json"
        assert sqlite_st.graph_file_for(tmp_path) == tmp_path.resolve() / "correlation-graph.sqlite"

    def test_graph_file_override(self, tmp_path):
        """Test GCG_GRAPH_PATH wins over the derived name."""
        target = tmp_path / "elsewhere" / "g.json"
        with patch.dict(os.environ, {"GCG_GRAPH_PATH": str(target)}, clear=True):
            st = Settings.load()

        assert st.graph_file_for(Path("/some/repo")) == target

    def test_log_level_normalised(self):
        """Test a lower-case level name from the environment is accepted."""
        with patch.dict(os.environ, {"GCG_LOG_LEVEL": " debug "}, clear=True):
            st = Settings.load()

        assert st.log_level == "DEBUG"

    def test_unknown_log_level_env(self):
        """Test an unknown GCG_LOG_LEVEL is rejected before logging is configured."""
        with patch.dict(os.environ, {"GCG_LOG_LEVEL": "verbose"}, clear=True):
            with pytest.raises(ConfigurationError):
                Settings.load()
