"""npm 子进程调用"""

import asyncio
from pathlib import Path


async def run_npm(npm_bin: str, *args: str, cwd: str | Path | None = None) -> tuple[int, str, str]:
    """执行 npm 子进程并等待结束

    Returns:
        (returncode, stdout, stderr)

    Raises:
        OSError: npm 可执行文件不存在或无法启动
    """
    proc = await asyncio.create_subprocess_exec(
        npm_bin,
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


def first_line(text: str) -> str:
    """npm 错误输出的第一行非空内容"""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""
