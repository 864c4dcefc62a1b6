"""DepseaConfig -- 运行配置加载

从环境变量加载配置，CLI 参数可在此基础上覆盖。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

DEFAULT_CONCURRENCY = 10
DEFAULT_PUBLISH_CONCURRENCY = 5
DEFAULT_TIMEOUT_S = 60

# npm 打包产物的扩展名
ARCHIVE_EXTENSION = ".tgz"


class DepseaConfig(BaseModel):
    """depsea 配置 -- 从环境变量加载

    环境变量:
        DEPSEA_CONCURRENCY: 下载并发数（默认 10）
        DEPSEA_PUBLISH_CONCURRENCY: 发布并发数（默认 5）
        DEPSEA_TIMEOUT_S: 单个请求超时（秒，默认 60）
        DEPSEA_OUTPUT_SUBDIR: download 命令输出子目录名
        DEPSEA_NPM_BIN: npm 可执行文件
        DEPSEA_LOG_FORMAT: 日志渲染模式（dev/json）
        DEPSEA_LOG_LEVEL: 日志级别
    """

    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        description="下载并发上限",
    )
    publish_concurrency: int = Field(
        default=DEFAULT_PUBLISH_CONCURRENCY,
        ge=1,
        description="npm publish 并发上限",
    )
    timeout_s: int = Field(
        default=DEFAULT_TIMEOUT_S,
        ge=1,
        description="单个 HTTP 请求超时（秒）",
    )
    output_subdir: str = Field(
        default="package-lock-tgzs",
        min_length=1,
        description="download 命令在输出目录下创建的子目录",
    )
    npm_bin: str = Field(default="npm", description="npm 可执行文件")
    log_format: Literal["dev", "json"] = Field(default="dev", description="日志渲染模式")
    log_level: str = Field(default="WARNING", description="日志级别")


_INT_FIELDS = {
    "DEPSEA_CONCURRENCY": ("concurrency", DEFAULT_CONCURRENCY),
    "DEPSEA_PUBLISH_CONCURRENCY": ("publish_concurrency", DEFAULT_PUBLISH_CONCURRENCY),
    "DEPSEA_TIMEOUT_S": ("timeout_s", DEFAULT_TIMEOUT_S),
}


def load_config() -> DepseaConfig:
    """从环境变量加载配置

    整数类环境变量无法解析时记录警告并使用默认值，不阻塞启动。

    Returns:
        DepseaConfig 实例
    """
    kwargs: dict = {}

    for env_var, (field_name, fallback) in _INT_FIELDS.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[field_name] = int(val)
            except ValueError:
                log.warning(
                    "invalid_config_value",
                    env_var=env_var,
                    value=val,
                    fallback=fallback,
                )

    if val := os.environ.get("DEPSEA_OUTPUT_SUBDIR"):
        kwargs["output_subdir"] = val

    if val := os.environ.get("DEPSEA_NPM_BIN"):
        kwargs["npm_bin"] = val

    if val := os.environ.get("DEPSEA_LOG_FORMAT"):
        kwargs["log_format"] = val

    if val := os.environ.get("DEPSEA_LOG_LEVEL"):
        kwargs["log_level"] = val

    return DepseaConfig(**kwargs)
