"""Publisher -- 将目录中的 .tgz 逐个 npm publish 到当前配置的 registry

单个文件发布失败只计入 failed，不中断其他文件。
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from .config import ARCHIVE_EXTENSION, DEFAULT_PUBLISH_CONCURRENCY
from .exceptions import PublishError
from .npm import first_line, run_npm

log = structlog.get_logger()


class PublishSummary(BaseModel):
    """发布结果汇总"""

    published: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict, description="文件名 -> 错误首行")

    @property
    def ok(self) -> bool:
        return not self.failed


class Publisher:
    """npm publish 批量执行器"""

    def __init__(
        self,
        concurrency: int = DEFAULT_PUBLISH_CONCURRENCY,
        npm_bin: str = "npm",
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._concurrency = concurrency
        self._npm_bin = npm_bin

    async def publish_directory(
        self,
        directory: str | Path,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> PublishSummary:
        """发布目录下全部 .tgz 文件

        Args:
            directory: 包含 .tgz 的目录
            on_progress: 每个文件成功发布后以 (published, total) 调用

        Returns:
            PublishSummary

        Raises:
            PublishError: 目录不存在
        """
        dir_path = Path(directory)
        if not dir_path.is_dir():
            raise PublishError(f"Directory not found: {dir_path}", recoverable=False)

        tarballs = sorted(
            p for p in dir_path.iterdir() if p.is_file() and p.name.endswith(ARCHIVE_EXTENSION)
        )
        total = len(tarballs)
        summary = PublishSummary()
        semaphore = asyncio.Semaphore(self._concurrency)

        log.info("publish_started", directory=str(dir_path), total=total)

        async def _publish(tarball: Path) -> None:
            async with semaphore:
                try:
                    returncode, _, stderr = await run_npm(
                        self._npm_bin, "publish", str(tarball)
                    )
                except OSError as e:
                    returncode, stderr = -1, str(e)
                if returncode == 0:
                    summary.published.append(tarball.name)
                    if on_progress is not None:
                        on_progress(len(summary.published), total)
                else:
                    reason = first_line(stderr) or f"npm exited with {returncode}"
                    summary.failed[tarball.name] = reason
                    log.error("publish_failed", filename=tarball.name, error=reason)

        await asyncio.gather(*(_publish(t) for t in tarballs))

        log.info(
            "publish_finished",
            published=len(summary.published),
            failed=len(summary.failed),
        )
        return summary
