"""depsea 异常体系

解析期结构错误为致命错误；下载错误按 artifact 单独抛出，不中断其他任务；
完整性不匹配不抛异常，仅由 Verifier 返回 False。
"""


class DepseaError(Exception):
    """depsea 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重新运行恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class LockfileFormatError(DepseaError):
    """lock 文档既不含 packages 也不含 dependencies，或结构无法校验

    在任何网络访问之前中止整个运行。
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class FetchError(DepseaError):
    """单个 artifact 下载失败（非 2xx 响应、连接失败、超时）

    仅使该 artifact 的任务失败，不取消同批次的其他任务。
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        """
        Args:
            url: 下载地址
            reason: HTTP 状态文本或底层异常描述
            status_code: HTTP 状态码，网络层失败时为 None
        """
        super().__init__(f"Failed to fetch {url}: {reason}", recoverable=True)
        self.url = url
        self.reason = reason
        self.status_code = status_code


class PublishError(DepseaError):
    """发布目录不可用"""


class LockfileGenerationError(DepseaError):
    """npm 生成 lockfile 失败"""

    def __init__(self, package_name: str, detail: str) -> None:
        super().__init__(
            f"Failed to generate lockfile for {package_name}: {detail}",
            recoverable=False,
        )
        self.package_name = package_name
        self.detail = detail
