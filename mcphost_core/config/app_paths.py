"""
애플리케이션 데이터 경로 제공자
"""

import os
from pathlib import Path
from typing import Optional, Union

DATA_DIR_ENV = "MCPHOST_DATA_DIR"
DEFAULT_DATA_DIR_NAME = ".mcphost"


class ApplicationPaths:
    """사용자별 애플리케이션 데이터 경로를 결정한다.

    우선순위: 생성자 인자 > ``MCPHOST_DATA_DIR`` 환경 변수 > ``~/.mcphost``
    """

    def __init__(
        self,
        user_data_dir: Optional[Union[str, Path]] = None,
        home_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        self._home_dir = Path(home_dir).expanduser() if home_dir else Path.home()

        if user_data_dir is None:
            user_data_dir = os.environ.get(DATA_DIR_ENV) or self._home_dir / DEFAULT_DATA_DIR_NAME
        self._user_data_dir = Path(user_data_dir).expanduser()

    @property
    def user_data_dir(self) -> Path:
        """사용자 데이터 디렉터리"""
        return self._user_data_dir

    @property
    def home_dir(self) -> Path:
        """사용자 홈 디렉터리"""
        return self._home_dir

    def config_file(self, file_name: str) -> Path:
        """데이터 디렉터리 아래 설정 파일 경로 반환"""
        return self._user_data_dir / file_name

    def __repr__(self) -> str:
        return f"ApplicationPaths(user_data_dir={str(self._user_data_dir)!r})"
