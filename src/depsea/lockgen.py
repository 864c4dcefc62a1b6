"""为单个包生成 package-lock.json

在临时目录写入最小 package.json，执行 npm install <pkg> --package-lock-only，
只解析依赖树、不安装 node_modules。
"""

import json
from pathlib import Path

import structlog

from .exceptions import LockfileGenerationError
from .npm import first_line, run_npm

log = structlog.get_logger()

STUB_PACKAGE_JSON = {"name": "temp-pkg", "version": "1.0.0"}


def safe_package_dirname(package_name: str) -> str:
    """@scope/pkg -> @scope-pkg"""
    return package_name.replace("/", "-")


async def generate_lockfile(
    package_name: str,
    work_dir: str | Path,
    npm_bin: str = "npm",
) -> Path:
    """在 work_dir 中为 package_name 生成 lockfile

    Returns:
        生成的 package-lock.json 路径

    Raises:
        LockfileGenerationError: npm 不可执行或返回非零
    """
    work_path = Path(work_dir)
    work_path.mkdir(parents=True, exist_ok=True)
    (work_path / "package.json").write_text(json.dumps(STUB_PACKAGE_JSON), encoding="utf-8")

    log.info("lockfile_generation_started", package=package_name, work_dir=str(work_path))
    try:
        returncode, _, stderr = await run_npm(
            npm_bin,
            "install",
            package_name,
            "--package-lock-only",
            cwd=work_path,
        )
    except OSError as e:
        raise LockfileGenerationError(package_name, str(e)) from e

    if returncode != 0:
        raise LockfileGenerationError(
            package_name,
            first_line(stderr) or f"npm exited with {returncode}",
        )

    lockfile_path = work_path / "package-lock.json"
    if not lockfile_path.is_file():
        raise LockfileGenerationError(package_name, "npm did not write package-lock.json")
    return lockfile_path
