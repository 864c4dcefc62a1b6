"""depsea 命令行入口

命令:
  download          按 package-lock.json 下载全部 tarball 并校验完整性
  publish           将目录中的 .tgz 发布到当前 npm registry
  download-package  为单个包生成 lockfile 后下载其依赖树
"""

import asyncio
import shutil
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import DepseaConfig, load_config
from .downloader import Downloader
from .exceptions import DepseaError
from .lockgen import generate_lockfile, safe_package_dirname
from .logging_config import setup_logging
from .models import Artifact
from .parser import PackageLockParser
from .publisher import Publisher
from .verifier import verify_artifacts

app = typer.Typer(
    name="depsea",
    help="Recursively download npm dependencies for air-gapped environments",
    no_args_is_help=True,
)
console = Console()

TEMP_LOCK_DIR = ".temp_lock_gen"


def _succeed(message: str) -> None:
    console.print(f"[green]✔[/green] {escape(message)}")


def _fail(message: str) -> None:
    console.print(f"[red]✖[/red] {escape(message)}")


def version_callback(value: bool) -> None:
    """打印版本并退出"""
    if value:
        console.print(f"depsea version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """DepSea - offline npm dependency mirroring."""
    config = load_config()
    setup_logging(config.log_format, config.log_level)
    # 子命令通过 ctx.obj 共享同一份配置
    ctx.obj = config


async def download_and_verify(
    lockfile: Path,
    output_dir: Path,
    concurrency: int,
    config: DepseaConfig,
) -> bool:
    """parse -> download -> verify 完整流程

    Returns:
        True 表示全部下载并校验通过
    """
    with console.status(f"Parsing {lockfile}..."):
        try:
            artifacts = PackageLockParser().parse(lockfile)
        except (DepseaError, OSError) as e:
            _fail(f"Parsing failed: {e}")
            return False
    _succeed(f"Found {len(artifacts)} unique artifacts.")

    downloader = Downloader(concurrency=concurrency, timeout_s=config.timeout_s)
    with console.status(
        f"Downloading to {output_dir} with concurrency {concurrency}..."
    ) as status:
        try:
            await downloader.download_artifacts(
                artifacts,
                output_dir,
                on_progress=lambda completed, total: status.update(
                    f"Downloading... ({completed}/{total})"
                ),
            )
        except (DepseaError, OSError) as e:
            _fail(f"Download failed: {e}")
            return False
    _succeed("Download complete.")

    def _report_failure(artifact: Artifact) -> None:
        console.print(f"[red]Integrity check failed for {escape(artifact.filename)}[/red]")

    with console.status("Verifying integrity..."):
        report = verify_artifacts(artifacts, output_dir, on_failure=_report_failure)

    message = (
        f"Verification complete: {len(report.passed)} passed, "
        f"{len(report.failed)} failed."
    )
    if report.ok:
        _succeed(message)
    else:
        _fail(message)
    return report.ok


@app.command()
def download(
    ctx: typer.Context,
    lockfile: Path = typer.Argument(..., help="Path to package-lock.json"),
    output_dir: Optional[Path] = typer.Argument(
        None, help="Directory to save .tgz files (defaults to current directory)"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", min=1, help="Download concurrency"
    ),
) -> None:
    """Download dependencies from package-lock.json to a local directory."""
    config: DepseaConfig = ctx.obj
    target_dir = (output_dir or Path.cwd()).resolve() / config.output_subdir

    ok = asyncio.run(
        download_and_verify(lockfile, target_dir, concurrency or config.concurrency, config)
    )
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def publish(
    ctx: typer.Context,
    tgzs_dir: Optional[Path] = typer.Argument(
        None, help="Directory containing .tgz files (defaults to current directory)"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", min=1, help="Publish concurrency"
    ),
) -> None:
    """Publish all .tgz files in a directory to the configured npm registry."""
    config: DepseaConfig = ctx.obj
    resolved_dir = (tgzs_dir or Path.cwd()).resolve()
    publisher = Publisher(
        concurrency=concurrency or config.publish_concurrency,
        npm_bin=config.npm_bin,
    )

    with console.status(f"Publishing .tgz files in {resolved_dir}...") as status:
        try:
            summary = asyncio.run(
                publisher.publish_directory(
                    resolved_dir,
                    on_progress=lambda published, total: status.update(
                        f"Publishing... ({published}/{total})"
                    ),
                )
            )
        except DepseaError as e:
            _fail(str(e))
            raise typer.Exit(code=1) from e

    for filename, reason in summary.failed.items():
        console.print(f"[red]Failed to publish {escape(filename)}:[/red] {escape(reason)}")

    message = (
        f"Publishing complete: {len(summary.published)} published, "
        f"{len(summary.failed)} failed."
    )
    if summary.ok:
        _succeed(message)
    else:
        _fail(message)
        raise typer.Exit(code=1)


async def _download_package(
    package_name: str,
    base_dir: Path,
    concurrency: int,
    config: DepseaConfig,
) -> bool:
    temp_dir = base_dir / TEMP_LOCK_DIR
    target_dir = base_dir / f"{safe_package_dirname(package_name)}-tgzs"
    try:
        with console.status(f"Generating lockfile for {package_name}..."):
            try:
                lockfile = await generate_lockfile(
                    package_name, temp_dir, npm_bin=config.npm_bin
                )
            except DepseaError as e:
                _fail(str(e))
                return False
        _succeed(f"Generated lockfile for {package_name}.")
        return await download_and_verify(lockfile, target_dir, concurrency, config)
    finally:
        try:
            shutil.rmtree(temp_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            console.print(f"[yellow]Failed to clean up temp dir: {escape(str(e))}[/yellow]")


@app.command("download-package")
def download_package(
    ctx: typer.Context,
    package_name: str = typer.Argument(..., help="Name of the package to download"),
    output_dir: Optional[Path] = typer.Argument(
        None, help="Parent directory to save the package tgzs (defaults to current directory)"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", min=1, help="Download concurrency"
    ),
) -> None:
    """Download dependencies for a single package via a temporary lockfile."""
    config: DepseaConfig = ctx.obj
    base_dir = (output_dir or Path.cwd()).resolve()

    ok = asyncio.run(
        _download_package(package_name, base_dir, concurrency or config.concurrency, config)
    )
    if not ok:
        raise typer.Exit(code=1)
