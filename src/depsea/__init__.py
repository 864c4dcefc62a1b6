"""depsea -- npm 依赖离线镜像工具

package-lock.json -> 去重 artifact 列表 -> 有界并发下载 -> SRI 完整性校验。
"""

__version__ = "1.0.0"

# 认证
from .auth import NpmConfig, get_auth_token

# 配置
from .config import DepseaConfig, load_config

# 核心组件
from .downloader import Downloader

# 异常
from .exceptions import (
    DepseaError,
    FetchError,
    LockfileFormatError,
    LockfileGenerationError,
    PublishError,
)
from .integrity import Integrity, integrity_from_data, integrity_from_hex, parse_integrity

# 数据模型
from .models import Artifact, DownloadResult, DownloadStatus
from .parser import PackageLockParser, artifact_filename
from .publisher import Publisher, PublishSummary
from .verifier import VerificationReport, Verifier, verify_artifacts

__all__ = [
    "__version__",
    "Artifact",
    "DownloadResult",
    "DownloadStatus",
    "PackageLockParser",
    "artifact_filename",
    "Downloader",
    "Verifier",
    "VerificationReport",
    "verify_artifacts",
    "Integrity",
    "parse_integrity",
    "integrity_from_data",
    "integrity_from_hex",
    "Publisher",
    "PublishSummary",
    "NpmConfig",
    "get_auth_token",
    "DepseaConfig",
    "load_config",
    "DepseaError",
    "LockfileFormatError",
    "FetchError",
    "PublishError",
    "LockfileGenerationError",
]
