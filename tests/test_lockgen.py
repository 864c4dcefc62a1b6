"""lockfile 生成单元测试（mock npm 子进程）"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from depsea.exceptions import LockfileGenerationError
from depsea.lockgen import generate_lockfile, safe_package_dirname
from depsea.npm import first_line


def test_safe_package_dirname():
    assert safe_package_dirname("lodash") == "lodash"
    assert safe_package_dirname("@scope/pkg") == "@scope-pkg"


def test_first_line_skips_blank_lines():
    assert first_line("\n  \nnpm ERR! 404\nmore") == "npm ERR! 404"
    assert first_line("") == ""


class TestGenerateLockfile:
    """generate_lockfile()"""

    async def test_runs_npm_install_lock_only(self, tmp_path: Path):
        """写入最小 package.json 并在工作目录执行 npm install --package-lock-only"""
        work_dir = tmp_path / "work"

        async def fake_run_npm(npm_bin, *args, cwd=None):
            (Path(cwd) / "package-lock.json").write_text("{}", encoding="utf-8")
            return 0, "", ""

        run_npm = AsyncMock(side_effect=fake_run_npm)
        with patch("depsea.lockgen.run_npm", run_npm):
            lockfile = await generate_lockfile("@scope/pkg", work_dir, npm_bin="npm-x")

        assert lockfile == work_dir / "package-lock.json"
        stub = json.loads((work_dir / "package.json").read_text(encoding="utf-8"))
        assert stub == {"name": "temp-pkg", "version": "1.0.0"}
        run_npm.assert_awaited_once_with(
            "npm-x", "install", "@scope/pkg", "--package-lock-only", cwd=work_dir
        )

    async def test_nonzero_exit_raises(self, tmp_path: Path):
        run_npm = AsyncMock(return_value=(1, "", "npm ERR! 404 Not Found - nope\nnpm ERR!"))
        with patch("depsea.lockgen.run_npm", run_npm):
            with pytest.raises(LockfileGenerationError) as exc_info:
                await generate_lockfile("nope", tmp_path)

        assert str(exc_info.value) == (
            "Failed to generate lockfile for nope: npm ERR! 404 Not Found - nope"
        )
        assert exc_info.value.recoverable is False

    async def test_missing_npm_raises(self, tmp_path: Path):
        run_npm = AsyncMock(side_effect=FileNotFoundError("No such file: 'npm'"))
        with patch("depsea.lockgen.run_npm", run_npm):
            with pytest.raises(LockfileGenerationError):
                await generate_lockfile("lodash", tmp_path)

    async def test_lockfile_not_written_raises(self, tmp_path: Path):
        run_npm = AsyncMock(return_value=(0, "", ""))
        with patch("depsea.lockgen.run_npm", run_npm):
            with pytest.raises(LockfileGenerationError) as exc_info:
                await generate_lockfile("lodash", tmp_path)

        assert "did not write package-lock.json" in str(exc_info.value)
