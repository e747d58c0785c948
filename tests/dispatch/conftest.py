"""dispatch 测试配置 -- 生成可执行的假 Agent 脚本"""

import stat
import sys
from pathlib import Path

import pytest


@pytest.fixture
def make_agent_script(tmp_path: Path):
    """写入一个以当前解释器运行的可执行脚本，返回其路径"""

    def _make(body: str, name: str = "fake-agent") -> str:
        script = tmp_path / name
        script.write_text(f"#!{sys.executable}\n{body}")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _make
