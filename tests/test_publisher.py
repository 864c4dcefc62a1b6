"""Publisher 单元测试

用 mock 替换 run_npm，不依赖真实 npm。
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from depsea.exceptions import PublishError
from depsea.publisher import Publisher


@pytest.fixture
def tgz_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "tgzs"
    directory.mkdir()
    for name in ("b-1.0.0.tgz", "a-1.0.0.tgz", "c-2.0.0.tgz"):
        (directory / name).write_bytes(b"tarball")
    (directory / "README.md").write_text("ignored")
    (directory / "nested.tgz").mkdir()
    return directory


class TestPublishDirectory:
    """publish_directory()"""

    async def test_publishes_every_tgz(self, tgz_dir: Path):
        """每个 .tgz 调用一次 npm publish，非 .tgz 与目录被忽略"""
        run_npm = AsyncMock(return_value=(0, "", ""))
        with patch("depsea.publisher.run_npm", run_npm):
            summary = await Publisher(concurrency=1, npm_bin="npm-x").publish_directory(tgz_dir)

        assert summary.ok is True
        assert summary.published == ["a-1.0.0.tgz", "b-1.0.0.tgz", "c-2.0.0.tgz"]
        args = [call.args for call in run_npm.await_args_list]
        assert args[0] == ("npm-x", "publish", str(tgz_dir / "a-1.0.0.tgz"))
        assert len(args) == 3

    async def test_failure_does_not_stop_others(self, tgz_dir: Path):
        """单个失败计入 failed，其余继续发布"""

        async def fake_run_npm(npm_bin, *args, cwd=None):
            if args[-1].endswith("b-1.0.0.tgz"):
                return 1, "", "npm ERR! code E403\nnpm ERR! more detail"
            return 0, "", ""

        with patch("depsea.publisher.run_npm", fake_run_npm):
            summary = await Publisher().publish_directory(tgz_dir)

        assert summary.ok is False
        assert sorted(summary.published) == ["a-1.0.0.tgz", "c-2.0.0.tgz"]
        assert summary.failed == {"b-1.0.0.tgz": "npm ERR! code E403"}

    async def test_missing_npm_reported_per_file(self, tgz_dir: Path):
        """npm 不可执行时每个文件都记为失败"""
        run_npm = AsyncMock(side_effect=FileNotFoundError("npm not found"))
        with patch("depsea.publisher.run_npm", run_npm):
            summary = await Publisher().publish_directory(tgz_dir)

        assert summary.published == []
        assert set(summary.failed) == {"a-1.0.0.tgz", "b-1.0.0.tgz", "c-2.0.0.tgz"}
        assert summary.failed["a-1.0.0.tgz"] == "npm not found"

    async def test_empty_stderr_uses_exit_code(self, tgz_dir: Path):
        run_npm = AsyncMock(return_value=(2, "", ""))
        with patch("depsea.publisher.run_npm", run_npm):
            summary = await Publisher().publish_directory(tgz_dir)

        assert summary.failed["a-1.0.0.tgz"] == "npm exited with 2"

    async def test_progress_counts_successes(self, tgz_dir: Path):
        """进度回调只在成功时触发"""

        async def fake_run_npm(npm_bin, *args, cwd=None):
            return (1, "", "boom") if "c-2.0.0" in args[-1] else (0, "", "")

        calls: list[tuple[int, int]] = []
        with patch("depsea.publisher.run_npm", fake_run_npm):
            await Publisher(concurrency=1).publish_directory(
                tgz_dir, on_progress=lambda p, t: calls.append((p, t))
            )

        assert calls == [(1, 3), (2, 3)]

    async def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(PublishError) as exc_info:
            await Publisher().publish_directory(tmp_path / "missing")
        assert "Directory not found" in str(exc_info.value)

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            Publisher(concurrency=0)
