"""SRI（Subresource Integrity）完整性字符串解析与计算

格式: "<algorithm>-<base64 digest>[?options]"，多个条目以空白分隔，
例如 npm lockfile 中的 "sha512-v2kDEe57...==" 或 "sha1-abc= sha512-def==".
未知算法与格式错误的条目被忽略。
"""

import base64
import binascii
import hashlib
import re
from collections.abc import Iterable

from pydantic import BaseModel, Field

# 从弱到强，pick_algorithm 选择最靠后的算法
ALGORITHM_PRIORITY: tuple[str, ...] = ("md5", "sha1", "sha256", "sha384", "sha512")

_SRI_TOKEN = re.compile(r"^([a-z0-9]+)-([^?]+)(\?[\x21-\x7e]*)?$")


class IntegrityHash(BaseModel):
    """单个 SRI 条目"""

    algorithm: str
    digest: str = Field(description="base64 编码的摘要")
    options: list[str] = Field(default_factory=list)

    def __str__(self) -> str:
        suffix = "".join(f"?{opt}" for opt in self.options)
        return f"{self.algorithm}-{self.digest}{suffix}"


class Integrity(BaseModel):
    """已解析的 SRI 字符串，按算法分组"""

    hashes: dict[str, list[IntegrityHash]] = Field(default_factory=dict)

    def __str__(self) -> str:
        return " ".join(str(h) for group in self.hashes.values() for h in group)

    def is_empty(self) -> bool:
        return not self.hashes

    def pick_algorithm(self) -> str | None:
        """返回最强的可用算法，无可用算法时返回 None"""
        for algorithm in reversed(ALGORITHM_PRIORITY):
            if algorithm in self.hashes:
                return algorithm
        return None

    def matches(self, algorithm: str, digest: str) -> bool:
        """digest（base64）是否与该算法的任一期望值一致"""
        return any(h.digest == digest for h in self.hashes.get(algorithm, []))

    def hexdigest(self) -> str | None:
        """最强算法的第一个摘要的十六进制形式，摘要无法解码时返回 None"""
        algorithm = self.pick_algorithm()
        if algorithm is None:
            return None
        try:
            raw = base64.b64decode(self.hashes[algorithm][0].digest)
        except binascii.Error:
            return None
        return raw.hex()


def parse_integrity(sri: str) -> Integrity:
    """解析 SRI 字符串

    Args:
        sri: 原始完整性字符串

    Returns:
        Integrity，可能为空（全部条目无法识别时）
    """
    integrity = Integrity()
    for token in sri.split():
        match = _SRI_TOKEN.match(token)
        if match is None:
            continue
        algorithm, digest, raw_options = match.groups()
        if algorithm not in ALGORITHM_PRIORITY:
            continue
        options = [opt for opt in (raw_options or "").split("?") if opt]
        integrity.hashes.setdefault(algorithm, []).append(
            IntegrityHash(algorithm=algorithm, digest=digest, options=options)
        )
    return integrity


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def integrity_from_data(
    data: bytes | str,
    algorithms: Iterable[str] = ("sha512",),
) -> str:
    """计算数据的 SRI 字符串

    Args:
        data: 原始内容，str 按 UTF-8 编码
        algorithms: 需要生成的算法

    Returns:
        以空格连接的 SRI 字符串
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return " ".join(
        f"{algorithm}-{_b64(hashlib.new(algorithm, data).digest())}"
        for algorithm in algorithms
    )


def integrity_from_hex(hex_digest: str, algorithm: str = "sha512") -> str:
    """十六进制摘要 -> SRI 字符串"""
    return f"{algorithm}-{_b64(bytes.fromhex(hex_digest))}"
