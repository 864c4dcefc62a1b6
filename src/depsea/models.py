"""数据模型 -- Artifact、lock 文档结构、下载结果

lock 文档模型允许额外字段（requires、dev、optional、engines 等），
解析时只关心 version / resolved / integrity 及嵌套关系。
"""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Artifact(BaseModel):
    """下载单元 -- 一个包版本的下载地址、SRI 摘要和本地文件名"""

    name: str = Field(description="包名，可含 scope 前缀（@scope/pkg）")
    version: str = Field(description="lock 文档声明的版本，不做解析")
    resolved: str = Field(description="tarball 下载 URL")
    integrity: str = Field(description="SRI 完整性字符串，作为去重键")
    filename: str = Field(description="输出目录中的文件名")


class PackageEntry(BaseModel):
    """lockfile v2/v3 packages 中的条目（flat shape）"""

    model_config = ConfigDict(extra="allow")

    version: str = ""
    resolved: str | None = None
    integrity: str | None = None
    dependencies: dict[str, str] | None = None


class DependencyEntry(BaseModel):
    """lockfile v1 dependencies 中的条目（nested shape，可递归）"""

    model_config = ConfigDict(extra="allow")

    version: str = ""
    resolved: str | None = None
    integrity: str | None = None
    requires: dict[str, str] | None = None
    dependencies: dict[str, "DependencyEntry"] | None = None


class PackageLock(BaseModel):
    """package-lock.json 顶层结构"""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    version: str | None = None
    lockfile_version: int | None = Field(default=None, alias="lockfileVersion")
    packages: dict[str, PackageEntry] | None = None
    dependencies: dict[str, DependencyEntry] | None = None


class DownloadStatus(StrEnum):
    """单个 artifact 下载任务的状态"""

    PENDING = "PENDING"
    SKIPPED = "SKIPPED"
    FETCHING = "FETCHING"
    WRITTEN = "WRITTEN"
    FAILED = "FAILED"


class DownloadResult(BaseModel):
    """单个 artifact 的下载结果"""

    artifact: Artifact
    path: Path
    status: DownloadStatus = DownloadStatus.PENDING
    error: str = ""
