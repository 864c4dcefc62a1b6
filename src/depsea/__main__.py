"""CLI 入口模块 -- python -m depsea <command>"""

from .cli import app


def main() -> None:
    """CLI 主入口"""
    app()


if __name__ == "__main__":
    main()
