from pathlib import Path

import pytest

from mcphost_core.config.app_paths import ApplicationPaths


class TestApplicationPaths:
    """ApplicationPaths 테스트"""

    def test_explicit_data_dir(self, tmp_path: Path):
        """생성자 인자가 가장 우선"""
        paths = ApplicationPaths(user_data_dir=tmp_path / "data", home_dir=tmp_path)

        assert paths.user_data_dir == tmp_path / "data"
        assert paths.home_dir == tmp_path
        assert paths.config_file("mcp-servers.json") == tmp_path / "data" / "mcp-servers.json"

    def test_env_data_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """환경 변수로 데이터 디렉터리 지정"""
        monkeypatch.setenv("MCPHOST_DATA_DIR", str(tmp_path / "env-data"))

        paths = ApplicationPaths(home_dir=tmp_path)

        assert paths.user_data_dir == tmp_path / "env-data"

    def test_default_data_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        """기본값은 홈 아래 .mcphost"""
        monkeypatch.delenv("MCPHOST_DATA_DIR", raising=False)

        paths = ApplicationPaths(home_dir=tmp_path)

        assert paths.user_data_dir == tmp_path / ".mcphost"
