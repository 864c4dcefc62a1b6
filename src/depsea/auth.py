"""npm registry 认证 -- 从 .npmrc 解析 bearer token

读取顺序（后者覆盖前者）:
    1. 全局配置 $NPM_CONFIG_GLOBALCONFIG
    2. 用户配置 $NPM_CONFIG_USERCONFIG 或 ~/.npmrc
    3. 项目配置 <cwd>/.npmrc
    4. npm_config_* 环境变量（前缀不区分大小写）

token 按 tarball URL 查找：从完整路径逐级向上回退到 host 根路径，
匹配 "//host/path/:_authToken" 形式的键。
"""

import os
import re
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlsplit

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

DEFAULT_REGISTRY = "https://registry.npmjs.org/"
TOKEN_KEY = ":_authToken"
ENV_PREFIX = "npm_config_"

_ENV_REF = re.compile(r"(\\*)\$\{([^}]+)\}")


def expand_env(value: str, env: Mapping[str, str]) -> str:
    """展开 ${VAR} 引用；转义形式 \\${VAR} 保持原样，未定义变量展开为空串"""

    def _replace(match: re.Match) -> str:
        escapes, name = match.group(1), match.group(2)
        if len(escapes) % 2 == 1:
            return f"{escapes[:-1]}${{{name}}}"
        return f"{escapes}{env.get(name, '')}"

    return _ENV_REF.sub(_replace, value)


def env_config_key(env_key: str) -> str | None:
    """环境变量名 -> npm 配置键，前缀不区分大小写

    NPM_CONFIG_REGISTRY -> registry
    npm_config_strict_ssl -> strict-ssl
    npm_config_//host/:_authToken -> //host/:_authToken（原样保留）
    """
    if env_key[: len(ENV_PREFIX)].lower() != ENV_PREFIX:
        return None
    name = env_key[len(ENV_PREFIX):]
    if not name:
        return None
    if name.startswith("//"):
        return name
    # 首字符之外的 _ 转为 -
    return (name[0] + name[1:].replace("_", "-")).lower()


def parse_npmrc(text: str, env: Mapping[str, str]) -> dict[str, str]:
    """解析 .npmrc 文本为键值映射

    每行 key=value；# 或 ; 开头为注释；值两端的引号被去除。
    """
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = expand_env(key.strip(), env)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key] = expand_env(value, env)
    return values


class NpmConfig(BaseModel):
    """合并后的 npm 配置"""

    values: dict[str, str] = Field(default_factory=dict)
    sources: list[str] = Field(default_factory=list, description="已读取的 .npmrc 路径")

    @property
    def registry(self) -> str:
        registry = self.values.get("registry", DEFAULT_REGISTRY)
        return registry if registry.endswith("/") else f"{registry}/"

    @classmethod
    def load(
        cls,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "NpmConfig":
        """按 npm 的优先级读取配置文件与环境变量

        Args:
            cwd: 项目目录，默认为当前工作目录
            env: 环境变量映射，默认为 os.environ
        """
        env = os.environ if env is None else env
        cwd = Path.cwd() if cwd is None else Path(cwd)

        candidates: list[Path] = []
        if global_config := env.get("NPM_CONFIG_GLOBALCONFIG"):
            candidates.append(Path(global_config))
        user_config = env.get("NPM_CONFIG_USERCONFIG")
        candidates.append(Path(user_config) if user_config else Path.home() / ".npmrc")
        candidates.append(cwd / ".npmrc")

        config = cls()
        for path in candidates:
            if not path.is_file():
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as e:
                log.warning("npmrc_read_failed", path=str(path), error=str(e))
                continue
            config.values.update(parse_npmrc(text, env))
            config.sources.append(str(path))

        for key, value in env.items():
            if name := env_config_key(key):
                config.values[name] = value

        log.debug("npm_config_loaded", sources=config.sources, registry=config.registry)
        return config

    def get_auth_token(self, url: str) -> str | None:
        """查找 URL 对应的 bearer token

        Args:
            url: tarball 下载地址或 registry 地址

        Returns:
            token 字符串，未配置时返回 None
        """
        if token := self._lookup(url):
            return token

        # tarball 位于默认 registry 时，允许使用 registry 根路径的 token
        registry = self.registry
        if urlsplit(url).netloc == urlsplit(registry).netloc:
            return self._lookup(registry)
        return None

    def _lookup(self, url: str) -> str | None:
        parts = urlsplit(url)
        if not parts.netloc:
            return None
        segments = [s for s in parts.path.split("/") if s]
        # 从最长路径逐级回退到 host 根
        for depth in range(len(segments), -1, -1):
            prefix = "//" + parts.netloc + "".join(f"/{s}" for s in segments[:depth])
            for key in (f"{prefix}/{TOKEN_KEY}", f"{prefix}{TOKEN_KEY}"):
                if token := self.values.get(key):
                    return token
        return None


@lru_cache(maxsize=1)
def default_npm_config() -> NpmConfig:
    """进程内缓存的默认 npm 配置"""
    return NpmConfig.load()


def get_auth_token(url: str) -> str | None:
    """使用默认 npm 配置查找 URL 对应的 bearer token"""
    return default_npm_config().get_auth_token(url)
