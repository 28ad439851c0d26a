import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

# 테스트 중에는 로그 파일을 만들지 않는다
os.environ.setdefault("MCPHOST_FILE_LOGGING", "0")

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

FAKE_SERVER = str(Path(__file__).parent / "fixtures" / "fake_tool_server.py")


def fake_server_options(mode: str) -> Dict[str, Any]:
    """가짜 도구 서버를 실행하는 custom 서버 설정"""
    return {"command": sys.executable, "args": [FAKE_SERVER, mode]}


@pytest.fixture
def fake_server() -> Callable[[str], Dict[str, Any]]:
    """모드별 가짜 도구 서버 설정 생성 함수"""
    return fake_server_options
