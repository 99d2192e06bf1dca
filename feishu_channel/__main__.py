"""Entry point for ``python -m feishu_channel``."""

from feishu_channel.cli.commands import app

if __name__ == "__main__":
    app()
