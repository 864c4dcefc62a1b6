"""Downloader -- 有界并发的 tarball 下载

每个 artifact 一个 asyncio 任务，由 asyncio.Semaphore 限制同时进行的请求数，
超出上限的任务按 FIFO 等待空位。

失败语义: 单个任务失败不取消其他任务。所有任务结束后，如有失败，
抛出按完成顺序最先出现的异常；已写入的文件保留在输出目录中，
重新运行时由跳过规则（目标文件已存在即跳过）实现断点续传。
"""

import asyncio
import os
import tempfile
import time
from collections import Counter
from collections.abc import Callable, Sequence
from pathlib import Path

import httpx
import structlog

from .auth import get_auth_token
from .config import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT_S
from .exceptions import FetchError
from .models import Artifact, DownloadResult, DownloadStatus

log = structlog.get_logger()

ProgressCallback = Callable[[int, int], None]
TokenLookup = Callable[[str], str | None]


def write_atomic(path: Path, payload: bytes) -> None:
    """先写入同目录临时文件再 os.replace，失败时不留下半成品"""
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".part",
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class Downloader:
    """tarball 下载器

    Args:
        concurrency: 同时进行的下载数上限
        timeout_s: 单个请求超时（秒），超时按下载失败处理
        token_lookup: URL -> bearer token 查找函数，默认读取 .npmrc
        transport: 可选的 httpx 传输层（测试注入 MockTransport）
    """

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        token_lookup: TokenLookup | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._concurrency = concurrency
        self._timeout_s = timeout_s
        self._token_lookup = token_lookup or get_auth_token
        self._transport = transport

    @property
    def concurrency(self) -> int:
        return self._concurrency

    async def download_artifacts(
        self,
        artifacts: Sequence[Artifact],
        output_dir: str | Path,
        on_progress: ProgressCallback | None = None,
    ) -> list[DownloadResult]:
        """下载全部 artifact 到 output_dir

        Args:
            artifacts: PackageLockParser 输出的 artifact 列表
            output_dir: 输出目录，不存在时递归创建
            on_progress: 每个任务结束（成功、跳过或失败）后以 (completed, total) 调用

        Returns:
            与输入顺序一致的 DownloadResult 列表

        Raises:
            FetchError: 任一 artifact 下载失败（所有任务结束后抛出第一个错误）
            Exception: on_progress 抛出的异常，同样在所有任务结束后抛出
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        results = [
            DownloadResult(artifact=artifact, path=output_path / artifact.filename)
            for artifact in artifacts
        ]
        self._warn_filename_collisions(artifacts)

        total = len(results)
        completed = 0
        errors: list[Exception] = []
        semaphore = asyncio.Semaphore(self._concurrency)
        start_time = time.monotonic()

        log.info(
            "download_started",
            total=total,
            output_dir=str(output_path),
            concurrency=self._concurrency,
        )

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout_s,
            follow_redirects=True,
        ) as client:

            async def _run(result: DownloadResult) -> None:
                nonlocal completed
                async with semaphore:
                    try:
                        await self._download_file(client, result)
                    except Exception as e:
                        result.status = DownloadStatus.FAILED
                        result.error = str(e)
                        errors.append(e)
                        log.error(
                            "artifact_download_failed",
                            filename=result.artifact.filename,
                            url=result.artifact.resolved,
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                    finally:
                        completed += 1
                        if on_progress is not None:
                            self._notify_progress(on_progress, completed, total, errors)

            await asyncio.gather(*(_run(result) for result in results))

        statuses = Counter(result.status for result in results)
        log.info(
            "download_finished",
            total=total,
            written=statuses[DownloadStatus.WRITTEN],
            skipped=statuses[DownloadStatus.SKIPPED],
            failed=statuses[DownloadStatus.FAILED],
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

        if errors:
            raise errors[0]
        return results

    async def _download_file(
        self,
        client: httpx.AsyncClient,
        result: DownloadResult,
    ) -> None:
        """下载单个 artifact: 跳过检查 -> 认证 -> GET -> 原子写入"""
        artifact = result.artifact

        if result.path.exists():
            result.status = DownloadStatus.SKIPPED
            log.debug("artifact_skipped", filename=artifact.filename)
            return

        result.status = DownloadStatus.FETCHING
        headers: dict[str, str] = {}
        if token := self._token_lookup(artifact.resolved):
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await client.get(artifact.resolved, headers=headers)
        except httpx.HTTPError as e:
            # 超时、连接失败、协议错误统一视为下载失败
            raise FetchError(artifact.resolved, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(
                artifact.resolved,
                response.reason_phrase,
                status_code=response.status_code,
            )

        await asyncio.to_thread(write_atomic, result.path, response.content)
        result.status = DownloadStatus.WRITTEN
        log.debug(
            "artifact_downloaded",
            filename=artifact.filename,
            size=len(response.content),
        )

    @staticmethod
    def _notify_progress(
        on_progress: ProgressCallback,
        completed: int,
        total: int,
        errors: list[Exception],
    ) -> None:
        # 回调异常不能中断 gather，记入 errors 待全部任务结束后再抛出
        try:
            on_progress(completed, total)
        except Exception as e:
            errors.append(e)
            log.error(
                "progress_callback_failed",
                completed=completed,
                total=total,
                error=str(e),
                error_type=type(e).__name__,
            )

    @staticmethod
    def _warn_filename_collisions(artifacts: Sequence[Artifact]) -> None:
        # 不同 integrity 但文件名相同时后写入者覆盖，由后续完整性校验暴露
        counts = Counter(artifact.filename for artifact in artifacts)
        for filename, count in counts.items():
            if count > 1:
                log.warning("filename_collision", filename=filename, count=count)
