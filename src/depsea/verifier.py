"""Verifier -- 已下载文件的完整性校验

流式读取文件，使用期望 SRI 中最强的算法计算摘要并比较。
所有失败原因（文件不存在、不可读、无可用算法、摘要不一致）统一返回 False，
不删除、不修复文件，补救动作由调用方决定。
"""

import base64
import hashlib
from collections.abc import Callable, Iterable
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from .integrity import parse_integrity
from .models import Artifact

log = structlog.get_logger()

CHUNK_SIZE = 64 * 1024


class Verifier:
    """SRI 完整性校验器"""

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        self._chunk_size = chunk_size

    def verify(self, file_path: str | Path, expected_integrity: str) -> bool:
        """校验文件内容与期望的 SRI 是否一致

        Args:
            file_path: 待校验文件
            expected_integrity: lock 文档声明的 integrity

        Returns:
            True 仅当算法与摘要完全匹配

        注意: 此方法不抛出异常。
        """
        integrity = parse_integrity(expected_integrity)
        algorithm = integrity.pick_algorithm()
        if algorithm is None:
            log.debug(
                "integrity_unsupported",
                path=str(file_path),
                integrity=expected_integrity,
            )
            return False

        hasher = hashlib.new(algorithm)
        try:
            with open(file_path, "rb") as f:
                while chunk := f.read(self._chunk_size):
                    hasher.update(chunk)
        except OSError as e:
            log.debug("integrity_read_failed", path=str(file_path), error=str(e))
            return False

        actual = base64.b64encode(hasher.digest()).decode("ascii")
        if integrity.matches(algorithm, actual):
            return True

        log.debug(
            "integrity_mismatch",
            path=str(file_path),
            algorithm=algorithm,
            actual=f"{algorithm}-{actual}",
        )
        return False


class VerificationReport(BaseModel):
    """批量校验结果，按 artifact 列表顺序记录文件名"""

    passed: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def verify_artifacts(
    artifacts: Iterable[Artifact],
    output_dir: str | Path,
    verifier: Verifier | None = None,
    on_failure: Callable[[Artifact], None] | None = None,
) -> VerificationReport:
    """按顺序逐个校验已下载的 artifact

    Args:
        artifacts: 待校验 artifact
        output_dir: 下载输出目录
        verifier: 自定义校验器，默认新建 Verifier
        on_failure: 每个校验失败的 artifact 回调一次
    """
    verifier = verifier or Verifier()
    report = VerificationReport()
    for artifact in artifacts:
        if verifier.verify(Path(output_dir) / artifact.filename, artifact.integrity):
            report.passed.append(artifact.filename)
        else:
            report.failed.append(artifact.filename)
            if on_failure is not None:
                on_failure(artifact)

    log.info("verification_finished", passed=len(report.passed), failed=len(report.failed))
    return report
