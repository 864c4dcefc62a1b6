"""depsea 测试 fixtures"""

import base64
import hashlib
from pathlib import Path

import pytest
from depsea.models import Artifact


def sri(content: bytes, algorithm: str = "sha512") -> str:
    """计算 content 的 SRI 字符串"""
    digest = hashlib.new(algorithm, content).digest()
    return f"{algorithm}-{base64.b64encode(digest).decode('ascii')}"


def make_artifact(
    name: str,
    version: str = "1.0.0",
    content: bytes | None = None,
    url: str | None = None,
) -> Artifact:
    """构造测试用 Artifact，integrity 由 content 计算"""
    content = content if content is not None else f"{name}@{version}".encode()
    safe_name = name.replace("/", "-").replace("@", "")
    return Artifact(
        name=name,
        version=version,
        resolved=url or f"https://registry.npmjs.org/{name}/-/{safe_name}-{version}.tgz",
        integrity=sri(content),
        filename=f"{safe_name}-{version}.tgz",
    )


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """下载输出目录（不预先创建，验证 Downloader 自动创建）"""
    return tmp_path / "out" / "package-lock-tgzs"


@pytest.fixture
def lockfile_v2() -> dict:
    """lockfile v2 flat shape 测试数据"""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "lockfileVersion": 2,
        "requires": True,
        "packages": {
            "": {"name": "test-project", "version": "1.0.0"},
            "node_modules/lodash": {
                "version": "4.17.21",
                "resolved": "https://registry.npmjs.org/lodash/-/lodash-4.17.21.tgz",
                "integrity": "sha512-v2kDEe57lecTulaDIuNTPy3Ry4gLGJ6Z1O3vE1krgXZNrsQ+LFTGHVxVjcXPs17LhbZVGedAJv8XZ1tvj5FvSg==",
            },
            "node_modules/foo": {
                "version": "1.0.0",
                "resolved": "https://registry.npmjs.org/foo/-/foo-1.0.0.tgz",
                "integrity": "sha512-foo",
                "dev": True,
            },
        },
    }


@pytest.fixture
def lockfile_v1() -> dict:
    """lockfile v1 nested shape 测试数据"""
    return {
        "name": "test-project",
        "version": "1.0.0",
        "lockfileVersion": 1,
        "dependencies": {
            "a": {
                "version": "1.0.0",
                "resolved": "https://registry.npmjs.org/a/-/a-1.0.0.tgz",
                "integrity": "sha512-a",
                "requires": {"b": "^2.0.0"},
                "dependencies": {
                    "b": {
                        "version": "2.0.0",
                        "resolved": "https://registry.npmjs.org/b/-/b-2.0.0.tgz",
                        "integrity": "sha512-b",
                    }
                },
            }
        },
    }
