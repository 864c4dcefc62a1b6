"""PackageLockParser -- package-lock.json 解析

支持两种结构：
- lockfile v2/v3 的 packages（flat shape，路径 -> 条目）
- lockfile v1 的 dependencies（nested shape，包名 -> 条目，可递归）

两者同时存在时以 packages 为准（npm 7+ 写出的 v2 lockfile 同时包含两者）。
按 integrity 去重：相同内容只下载一次，保留遍历中最先出现的 name/version。
"""

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from .config import ARCHIVE_EXTENSION
from .exceptions import LockfileFormatError
from .models import Artifact, DependencyEntry, PackageEntry, PackageLock

log = structlog.get_logger()

NODE_MODULES_MARKER = "node_modules/"


def extract_name_from_path(path: str) -> str:
    """从 packages 路径提取包名

    node_modules/lodash -> lodash
    node_modules/@types/node -> @types/node
    node_modules/a/node_modules/b -> b
    """
    return path.split(NODE_MODULES_MARKER)[-1]


def artifact_filename(name: str, version: str) -> str:
    """生成本地文件名

    lodash, 4.17.21 -> lodash-4.17.21.tgz
    @types/node, 1.0.0 -> types-node-1.0.0.tgz
    """
    safe_name = name.replace("/", "-").replace("@", "")
    return f"{safe_name}-{version}{ARCHIVE_EXTENSION}"


def _make_artifact(name: str, version: str, resolved: str, integrity: str) -> Artifact:
    return Artifact(
        name=name,
        version=version,
        resolved=resolved,
        integrity=integrity,
        filename=artifact_filename(name, version),
    )


class PackageLockParser:
    """lock 文档 -> 去重后的有序 Artifact 列表

    每次调用使用独立的累积字典，同一实例可重复解析多个文档。
    """

    def parse(self, file_path: str | Path) -> list[Artifact]:
        """读取并解析 lockfile 文件

        Raises:
            LockfileFormatError: 文件不是 UTF-8 编码的合法 JSON，或不含可识别的结构
            OSError: 文件不存在或不可读
        """
        try:
            document = json.loads(Path(file_path).read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            raise LockfileFormatError(
                f"Invalid package-lock.json: {file_path} is not valid UTF-8 ({e})"
            ) from e
        except json.JSONDecodeError as e:
            raise LockfileFormatError(
                f"Invalid package-lock.json: {file_path} is not valid JSON ({e})"
            ) from e
        return self.parse_lock_data(document)

    def parse_lock_data(self, document: Mapping[str, Any]) -> list[Artifact]:
        """解析已加载的 lock 文档

        Args:
            document: json.loads 得到的顶层对象

        Returns:
            按遍历顺序排列、按 integrity 去重的 Artifact 列表

        Raises:
            LockfileFormatError: 既无 packages 也无 dependencies，或条目结构非法
        """
        if not isinstance(document, Mapping):
            raise LockfileFormatError(
                "Invalid package-lock.json: top level must be an object."
            )
        try:
            lockfile = PackageLock.model_validate(document)
        except ValidationError as e:
            raise LockfileFormatError(f"Invalid package-lock.json: {e}") from e

        artifacts: dict[str, Artifact] = {}
        if lockfile.packages is not None:
            shape = "packages"
            self._collect_packages(lockfile.packages, artifacts)
        elif lockfile.dependencies is not None:
            shape = "dependencies"
            self._collect_dependencies(lockfile.dependencies, artifacts)
        else:
            raise LockfileFormatError(
                "Invalid package-lock.json: No packages or dependencies found."
            )

        log.info(
            "lockfile_parsed",
            shape=shape,
            lockfile_version=lockfile.lockfile_version,
            artifact_count=len(artifacts),
        )
        return list(artifacts.values())

    @staticmethod
    def _collect_packages(
        packages: Mapping[str, PackageEntry],
        artifacts: dict[str, Artifact],
    ) -> None:
        for path, entry in packages.items():
            if path == "":
                continue
            # link / workspace 条目没有远端内容
            if not entry.resolved or not entry.integrity:
                continue
            if entry.integrity in artifacts:
                continue
            artifacts[entry.integrity] = _make_artifact(
                extract_name_from_path(path),
                entry.version,
                entry.resolved,
                entry.integrity,
            )

    def _collect_dependencies(
        self,
        dependencies: Mapping[str, DependencyEntry],
        artifacts: dict[str, Artifact],
    ) -> None:
        for name, entry in dependencies.items():
            if entry.resolved and entry.integrity and entry.integrity not in artifacts:
                artifacts[entry.integrity] = _make_artifact(
                    name,
                    entry.version,
                    entry.resolved,
                    entry.integrity,
                )
            if entry.dependencies:
                self._collect_dependencies(entry.dependencies, artifacts)
